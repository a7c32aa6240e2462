from typing import List, Optional
import uuid

from sqlalchemy.orm import Session

from devjobs.models.technology import Technology
from devjobs.utils.slugs import slugify


def list_technologies(db: Session) -> List[Technology]:
    return db.query(Technology).order_by(Technology.name).all()


def get_technology(db: Session, technology_id: uuid.UUID) -> Optional[Technology]:
    return db.query(Technology).filter(Technology.id == technology_id).first()


def create_technology(db: Session, name: str, icon: Optional[str] = None, slug: Optional[str] = None) -> Technology:
    slug = slug or slugify(name)
    existing = db.query(Technology).filter((Technology.name == name) | (Technology.slug == slug)).first()
    if existing:
        raise ValueError("A technology with this name or slug already exists.")

    technology = Technology(name=name, slug=slug, icon=icon)
    db.add(technology)
    db.commit()
    db.refresh(technology)
    return technology


def update_technology(db: Session, technology: Technology, **fields) -> Technology:
    name = fields.get("name")
    slug = fields.get("slug") or (slugify(name) if name else None)
    if name or slug:
        clash = db.query(Technology).filter(
            Technology.id != technology.id,
            (Technology.name == (name or technology.name)) | (Technology.slug == (slug or technology.slug))
        ).first()
        if clash:
            raise ValueError("A technology with this name or slug already exists.")

    if name:
        technology.name = name
    if slug:
        technology.slug = slug
    if "icon" in fields:
        technology.icon = fields["icon"]

    db.commit()
    db.refresh(technology)
    return technology


def delete_technology(db: Session, technology: Technology):
    db.delete(technology)
    db.commit()
