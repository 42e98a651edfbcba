from types import SimpleNamespace

from studiodesk.domain.templates import rendering

PORTRAIT_ITEMS = [
    {"description": "Half-day portrait session", "quantity": 1, "unitPrice": 450},
    {"description": "Retouched images", "quantity": 10, "unitPrice": 12.5},
]
AGREEMENT_BODY = "<p>Agreement between {{client.name}} and {{studio.name}} for {{shoot.date}}</p>"
AGREEMENT_VARIABLES = {
    "client.name": {"required": True},
    "shoot.date": {"required": True},
    "studio.name": {"required": False},
}


def create_clause(client, slug="cancellation", **fields):
    payload = {"slug": slug, "title": "Cancellation", "bodyHtml": "<p>Fees are non-refundable.</p>", **fields}
    response = client.post("/admin/clauses", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_contract_template(client, name="Wedding agreement", **fields):
    payload = {
        "name": name,
        "type": "SERVICE_AGREEMENT",
        "eventType": "WEDDING",
        "bodyHtml": AGREEMENT_BODY,
        "variablesSchema": AGREEMENT_VARIABLES,
        **fields,
    }
    response = client.post("/admin/contract-templates", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ---------------------------------------------------------------- rendering


def test_substitute_escapes_values_and_keeps_unknown_placeholders():
    text = "Dear {{ client.name }}, see you {{shoot.date}} at {{venue}}"
    result = rendering.substitute(text, {"client": {"name": "<Ada>"}, "shoot": {"date": ""}})
    assert result == "Dear &lt;Ada&gt;, see you {{shoot.date}} at {{venue}}"


def test_missing_variables_only_reports_required_ones():
    schema = {"client.name": {"required": True}, "venue": {"required": False}, "shoot.date": True}
    assert rendering.missing_variables(schema, {"client": {"name": "Ada"}}) == ["shoot.date"]
    assert rendering.placeholders("{{b}} {{a}} {{b}}") == ["a", "b"]


def test_render_contract_appends_clause_sections():
    clause = SimpleNamespace(slug="usage-rights", title="Usage", body_html="<p>{{studio.name}} keeps copyright</p>")
    html = rendering.render_contract("<p>Body</p>", [clause], {"studio": {"name": "North Light"}})
    assert html.startswith("<p>Body</p>\n")
    assert '<section class="clause" data-clause="usage-rights"><h3>Usage</h3>' in html
    assert "North Light keeps copyright" in html


# ---------------------------------------------------------------- proposal templates


def test_proposal_template_crud_and_stats(admin_client):
    created = admin_client.post(
        "/admin/proposal-templates",
        json={"name": "Portraits", "title": "Portrait session", "items": PORTRAIT_ITEMS},
    )
    assert created.status_code == 201
    template = created.json()["data"]
    assert [i["position"] for i in template["items"]] == [0, 1]

    updated = admin_client.patch(
        f"/admin/proposal-templates/{template['id']}", json={"defaultTerms": "50% deposit to book"}
    ).json()["data"]
    assert updated["defaultTerms"] == "50% deposit to book"

    copy = admin_client.post(f"/admin/proposal-templates/{template['id']}/duplicate", json={}).json()["data"]
    assert copy["name"] == "Portraits (Copy)"
    assert len(copy["items"]) == 2

    assert admin_client.delete(f"/admin/proposal-templates/{copy['id']}").status_code == 200
    assert len(admin_client.get("/admin/proposal-templates").json()["data"]) == 1
    listed = admin_client.get("/admin/proposal-templates", params={"includeInactive": True}).json()["data"]
    assert len(listed) == 2

    stats = admin_client.get("/admin/proposal-templates/stats").json()["data"]
    assert stats == {"total": 2, "active": 1, "inactive": 1}


def test_proposal_created_from_template(admin_client, make_client):
    studio_client = make_client()
    template = admin_client.post(
        "/admin/proposal-templates",
        json={"name": "Portraits", "title": "Portrait session", "defaultTerms": "Net 14", "items": PORTRAIT_ITEMS},
    ).json()["data"]

    response = admin_client.post(
        "/admin/proposals", json={"clientId": studio_client["id"], "templateId": template["id"], "taxRate": 20}
    )
    assert response.status_code == 201, response.text
    proposal = response.json()["data"]
    assert proposal["title"] == "Portrait session"
    assert proposal["terms"] == "Net 14"
    assert proposal["subtotal"] == 575
    assert proposal["total"] == 690

    admin_client.delete(f"/admin/proposal-templates/{template['id']}")
    inactive = admin_client.post(
        "/admin/proposals", json={"clientId": studio_client["id"], "templateId": template["id"]}
    )
    assert inactive.status_code == 400
    assert inactive.json()["message"] == "Proposal template is inactive"


# ---------------------------------------------------------------- clauses


def test_clause_rules(admin_client):
    clause = create_clause(admin_client, tags=["Wedding", "fees", "wedding"], mandatory=True)
    assert clause["tags"] == ["fees", "wedding"]

    duplicate = admin_client.post(
        "/admin/clauses", json={"slug": "cancellation", "title": "Again", "bodyHtml": "<p>x</p>"}
    )
    assert duplicate.status_code == 409

    optional = admin_client.put(f"/admin/clauses/{clause['id']}", json={"mandatory": False})
    assert optional.status_code == 400
    assert optional.json()["message"] == "Cannot change mandatory clause to optional"

    deleted = admin_client.delete(f"/admin/clauses/{clause['id']}")
    assert deleted.status_code == 400
    assert deleted.json()["message"] == "Cannot delete mandatory clause"

    assert admin_client.get("/admin/clauses/slug/cancellation").json()["data"]["id"] == clause["id"]


def test_clause_body_is_sanitised(admin_client):
    clause = create_clause(admin_client, slug="privacy", bodyHtml='<p onclick="x()">Kept</p><script>alert(1)</script>')
    assert "<script" not in clause["bodyHtml"]
    assert "onclick" not in clause["bodyHtml"]
    assert "<p>Kept</p>" in clause["bodyHtml"]

    bad_slug = admin_client.post("/admin/clauses", json={"slug": "Not A Slug", "title": "x", "bodyHtml": "<p>x</p>"})
    assert bad_slug.status_code == 422


def test_clause_tags_and_stats(admin_client):
    create_clause(admin_client, slug="cancellation", tags=["fees"], mandatory=True)
    optional = create_clause(admin_client, slug="drone-use", tags=["aerial", "fees"])
    admin_client.delete(f"/admin/clauses/{optional['id']}")

    assert admin_client.get("/admin/clauses/tags").json()["data"] == ["aerial", "fees"]
    assert len(admin_client.get("/admin/clauses", params={"tag": "aerial"}).json()["data"]) == 1
    assert len(admin_client.get("/admin/clauses/mandatory").json()["data"]) == 1

    stats = admin_client.get("/admin/clauses/stats").json()["data"]
    assert stats["total"] == 2
    assert stats["mandatory"] == 1
    assert stats["inactive"] == 1
    assert stats["totalTags"] == 2


# ---------------------------------------------------------------- contract templates


def test_contract_template_names_and_clause_ids(admin_client):
    clause = create_clause(admin_client)
    template = create_contract_template(admin_client, mandatoryClauseIds=[clause["id"], clause["id"]])
    assert template["mandatoryClauseIds"] == [clause["id"]]
    assert template["version"] == 1
    assert template["isPublished"] is False

    clash = admin_client.post("/admin/contract-templates", json={"name": "Wedding agreement"})
    assert clash.status_code == 409

    invalid = admin_client.post(
        "/admin/contract-templates", json={"name": "Other", "mandatoryClauseIds": [clause["id"], 999]}
    )
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Some clause IDs are invalid"

    detail = admin_client.get(f"/admin/contract-templates/{template['id']}").json()["data"]
    assert [c["slug"] for c in detail["clauses"]] == ["cancellation"]


def test_publish_locks_body_until_new_version(admin_client):
    bare = create_contract_template(admin_client, name="Bare", variablesSchema={})
    refused = admin_client.post(f"/admin/contract-templates/{bare['id']}/publish")
    assert refused.status_code == 400
    assert refused.json()["message"] == "Cannot publish template without variables schema"

    template = create_contract_template(admin_client)
    published = admin_client.post(f"/admin/contract-templates/{template['id']}/publish").json()["data"]
    assert published["isPublished"] is True
    assert admin_client.post(f"/admin/contract-templates/{template['id']}/publish").status_code == 400

    edit = admin_client.put(f"/admin/contract-templates/{template['id']}", json={"bodyHtml": "<p>New</p>"})
    assert edit.status_code == 400
    rename = admin_client.put(f"/admin/contract-templates/{template['id']}", json={"description": "Standard"})
    assert rename.status_code == 200

    version = admin_client.post(f"/admin/contract-templates/{template['id']}/version")
    assert version.status_code == 201
    draft = version.json()["data"]
    assert draft["name"] == "Wedding agreement (v2)"
    assert draft["version"] == 2
    assert draft["isPublished"] is False

    published_list = admin_client.get("/admin/contract-templates/published").json()["data"]
    assert [t["id"] for t in published_list] == [template["id"]]

    stats = admin_client.get("/admin/contract-templates/stats").json()["data"]
    assert stats["total"] == 3
    assert stats["published"] == 1
    assert stats["byEventType"] == {"WEDDING": 3}


def test_render_with_client_and_variables(admin_client, make_client):
    studio_client = make_client()
    clause = create_clause(admin_client, bodyHtml="<p>{{client.name}} may cancel in writing.</p>")
    template = create_contract_template(admin_client, mandatoryClauseIds=[clause["id"]])

    response = admin_client.post(
        f"/admin/contract-templates/{template['id']}/render",
        json={"clientId": studio_client["id"], "variables": {"shoot.date": "<b>2 Nov</b>"}},
    )
    assert response.status_code == 200, response.text
    rendered = response.json()["data"]
    assert rendered["clauses"] == ["cancellation"]
    assert "Agreement between Ada Lovelace and {{studio.name}}" in rendered["html"]
    assert "&lt;b&gt;2 Nov&lt;/b&gt;" in rendered["html"]
    assert "Ada Lovelace may cancel in writing." in rendered["html"]


def test_render_reports_missing_variables(admin_client):
    template = create_contract_template(admin_client)
    response = admin_client.post(f"/admin/contract-templates/{template['id']}/render", json={})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Missing required template variables"
    assert body["missing"] == ["client.name", "shoot.date"]


def test_render_unknown_client(admin_client):
    template = create_contract_template(admin_client)
    response = admin_client.post(
        f"/admin/contract-templates/{template['id']}/render", json={"clientId": 999}
    )
    assert response.status_code == 404
