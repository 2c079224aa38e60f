from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from models.users import User


def get_user(db: Session, tenant_id: str, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id, User.tenant_id == tenant_id).first()


def get_active_user(db: Session, tenant_id: str, user_id: str) -> Optional[User]:
    return db.query(User).filter(
        User.id == user_id,
        User.tenant_id == tenant_id,
        User.is_active.is_(True),
    ).first()


def users_by_ids(db: Session, tenant_id: str, user_ids: Iterable[str]) -> Dict[str, User]:
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    rows = db.query(User).filter(User.tenant_id == tenant_id, User.id.in_(ids)).all()
    return {u.id: u for u in rows}


def list_users(db: Session, tenant_id: str) -> List[User]:
    return db.query(User).filter(User.tenant_id == tenant_id, User.is_active.is_(True)).order_by(User.name).all()
