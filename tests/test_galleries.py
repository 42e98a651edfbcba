from datetime import datetime, timedelta

import pytest


@pytest.fixture
def assets(admin_client):
    ids = []
    for index in range(3):
        response = admin_client.post(
            "/admin/assets",
            json={
                "filename": f"IMG_{index:04d}.jpg",
                "filepath": f"shoots/smith/IMG_{index:04d}.jpg",
                "mimeType": "image/jpeg",
                "size": 2_000_000,
                "width": 6000,
                "height": 4000,
            },
        )
        assert response.status_code == 201, response.text
        ids.append(response.json()["data"]["id"])
    return ids


def create_gallery(client, asset_ids, **fields):
    response = client.post("/admin/galleries", json={"name": "Smith wedding", "assetIds": asset_ids, **fields})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_gallery_with_assets(admin_client, assets):
    gallery = create_gallery(admin_client, assets)
    assert len(gallery["token"]) == 32
    assert gallery["isProtected"] is False
    assert [item["id"] for item in gallery["items"]] == assets
    assert [item["position"] for item in gallery["items"]] == [0, 1, 2]


def test_add_unknown_asset_is_404(admin_client, assets):
    gallery = create_gallery(admin_client, assets[:1])
    response = admin_client.post(f"/admin/galleries/{gallery['id']}/assets", json={"assetIds": [999]})
    assert response.status_code == 404


def test_reorder_requires_every_asset(admin_client, assets):
    gallery = create_gallery(admin_client, assets)
    bad = admin_client.put(f"/admin/galleries/{gallery['id']}/reorder", json={"assetIds": assets[:2]})
    assert bad.status_code == 400

    reversed_ids = list(reversed(assets))
    response = admin_client.put(f"/admin/galleries/{gallery['id']}/reorder", json={"assetIds": reversed_ids})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["data"]["items"]] == reversed_ids


def test_favorite_cover_and_remove(admin_client, assets):
    gallery = create_gallery(admin_client, assets)
    gallery_id = gallery["id"]

    favorite = admin_client.post(f"/admin/galleries/{gallery_id}/assets/{assets[1]}/favorite").json()["data"]
    assert favorite["isFavorite"] is True

    cover = admin_client.put(f"/admin/galleries/{gallery_id}/cover", json={"assetId": assets[0]})
    assert cover.json()["data"]["coverAssetId"] == assets[0]

    admin_client.delete(f"/admin/galleries/{gallery_id}/assets/{assets[0]}")
    detail = admin_client.get(f"/admin/galleries/{gallery_id}").json()["data"]
    assert detail["coverAssetId"] is None
    assert detail["itemCount"] == 2

    not_member = admin_client.put(f"/admin/galleries/{gallery_id}/cover", json={"assetId": assets[0]})
    assert not_member.status_code == 400


def test_public_gallery_with_password(admin_client, assets):
    gallery = create_gallery(admin_client, assets, password="s3cret")
    token = gallery["token"]

    meta = admin_client.get(f"/g/{token}/meta").json()["data"]
    assert meta["isProtected"] is True

    assert admin_client.post(f"/g/{token}/access", json={"password": "wrong"}).status_code == 401
    assert admin_client.get(f"/g/{token}/items").status_code == 401

    granted = admin_client.post(f"/g/{token}/access", json={"password": "s3cret"})
    assert granted.status_code == 200
    assert granted.json()["data"]["viewCount"] == 1

    items = admin_client.get(f"/g/{token}/items", params={"password": "s3cret"}).json()["data"]
    assert len(items) == 3


def test_clearing_password_opens_gallery(admin_client, assets):
    gallery = create_gallery(admin_client, assets, password="s3cret")
    admin_client.put(f"/admin/galleries/{gallery['id']}/password", json={"password": None})
    assert admin_client.get(f"/g/{gallery['token']}/items").status_code == 200


def test_deactivated_and_expired_galleries(admin_client, assets):
    inactive = create_gallery(admin_client, assets)
    admin_client.delete(f"/admin/galleries/{inactive['id']}")
    assert admin_client.get(f"/g/{inactive['token']}/meta").status_code == 404

    expired = create_gallery(
        admin_client, assets, expiresAt=(datetime.utcnow() - timedelta(days=1)).isoformat()
    )
    assert admin_client.get(f"/g/{expired['token']}/meta").status_code == 410


def test_list_and_stats(admin_client, assets):
    create_gallery(admin_client, assets, password="s3cret")
    hidden = create_gallery(admin_client, assets[:1])
    admin_client.delete(f"/admin/galleries/{hidden['id']}")

    listing = admin_client.get("/admin/galleries").json()
    assert listing["pagination"]["total"] == 1
    everything = admin_client.get("/admin/galleries", params={"includeInactive": True}).json()
    assert everything["pagination"]["total"] == 2

    stats = admin_client.get("/admin/galleries/stats").json()["data"]
    assert stats["galleries"] == 2
    assert stats["active"] == 1
    assert stats["protected"] == 1
    assert stats["assets"] == 3
