"""Template repository - Database operations for proposal templates, contract templates and clauses"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models_templates import Clause, ContractTemplate, ProposalTemplate


class TemplateRepository:
    """Repository for template and clause database operations"""

    # ------------------------------------------------------ proposal templates

    @staticmethod
    def get_proposal_template(db: Session, template_id: int) -> Optional[ProposalTemplate]:
        return (
            db.query(ProposalTemplate)
            .options(selectinload(ProposalTemplate.items))
            .filter(ProposalTemplate.id == template_id)
            .first()
        )

    @staticmethod
    def list_proposal_templates(db: Session, include_inactive: bool = False) -> list[ProposalTemplate]:
        query = db.query(ProposalTemplate).options(selectinload(ProposalTemplate.items))
        if not include_inactive:
            query = query.filter(ProposalTemplate.is_active.is_(True))
        return query.order_by(ProposalTemplate.name.asc()).all()

    @staticmethod
    def count_proposal_templates(db: Session) -> dict[bool, int]:
        rows = (
            db.query(ProposalTemplate.is_active, func.count(ProposalTemplate.id))
            .group_by(ProposalTemplate.is_active)
            .all()
        )
        return {bool(active): count for active, count in rows}

    # ------------------------------------------------------ contract templates

    @staticmethod
    def get_contract_template(db: Session, template_id: int) -> Optional[ContractTemplate]:
        return db.query(ContractTemplate).filter(ContractTemplate.id == template_id).first()

    @staticmethod
    def get_contract_template_by_name(db: Session, name: str) -> Optional[ContractTemplate]:
        return db.query(ContractTemplate).filter(ContractTemplate.name == name).first()

    @staticmethod
    def list_contract_templates(
        db: Session,
        search: Optional[str] = None,
        doc_type: Optional[str] = None,
        event_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_published: Optional[bool] = None,
    ) -> list[ContractTemplate]:
        query = db.query(ContractTemplate)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(ContractTemplate.name.ilike(pattern), ContractTemplate.description.ilike(pattern))
            )
        if doc_type:
            query = query.filter(ContractTemplate.type == doc_type)
        if event_type:
            query = query.filter(ContractTemplate.event_type == event_type)
        if is_active is not None:
            query = query.filter(ContractTemplate.is_active.is_(is_active))
        if is_published is not None:
            query = query.filter(ContractTemplate.is_published.is_(is_published))
        return query.order_by(ContractTemplate.name.asc(), ContractTemplate.version.desc()).all()

    @staticmethod
    def count_contract_templates_by(db: Session, column) -> dict:
        rows = db.query(column, func.count(ContractTemplate.id)).group_by(column).all()
        return {key: count for key, count in rows}

    # ----------------------------------------------------------------- clauses

    @staticmethod
    def get_clause(db: Session, clause_id: int) -> Optional[Clause]:
        return db.query(Clause).filter(Clause.id == clause_id).first()

    @staticmethod
    def get_clause_by_slug(db: Session, slug: str) -> Optional[Clause]:
        return db.query(Clause).filter(Clause.slug == slug).first()

    @staticmethod
    def get_clauses(db: Session, clause_ids: list[int], active_only: bool = False) -> list[Clause]:
        if not clause_ids:
            return []
        query = db.query(Clause).filter(Clause.id.in_(clause_ids))
        if active_only:
            query = query.filter(Clause.is_active.is_(True))
        return query.order_by(Clause.title.asc()).all()

    @staticmethod
    def list_clauses(
        db: Session,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        mandatory: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> list[Clause]:
        query = db.query(Clause)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Clause.title.ilike(pattern), Clause.slug.ilike(pattern)))
        if mandatory is not None:
            query = query.filter(Clause.mandatory.is_(mandatory))
        if is_active is not None:
            query = query.filter(Clause.is_active.is_(is_active))

        clauses = query.order_by(Clause.title.asc()).all()
        # Tags live in a JSON list, filtered here for portability
        if tag:
            tag = tag.strip().lower()
            clauses = [c for c in clauses if tag in (c.tags or [])]
        return clauses

    @staticmethod
    def all_clause_tags(db: Session) -> list[str]:
        tags = set()
        for (clause_tags,) in db.query(Clause.tags).all():
            tags.update(clause_tags or [])
        return sorted(tags)
