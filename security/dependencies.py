from dataclasses import dataclass
from typing import Optional

import jwt as pyjwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from core.db import get_db
from core.exceptions import Forbidden, Unauthorized
from models.user import Buyer, Seller
from security import jwt as jwt_utils
from security.jwt import BUYER_ROLE, SELLER_ROLE


@dataclass(frozen=True)
class Identity:
    role: str
    subject_id: str

    @property
    def buyer_id(self) -> Optional[str]:
        return self.subject_id if self.role == BUYER_ROLE else None

    @property
    def seller_id(self) -> Optional[str]:
        return self.subject_id if self.role == SELLER_ROLE else None


def get_identity(authorization: Optional[str] = Header(default=None, alias="Authorization")) -> Identity:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized("Authorization header required")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt_utils.decode_access(token)
    except pyjwt.PyJWTError:
        raise Unauthorized("Invalid or expired token")
    role = payload.get("role")
    subject_id = payload.get("sub")
    if role not in (BUYER_ROLE, SELLER_ROLE) or not subject_id:
        raise Unauthorized("Invalid token")
    return Identity(role=role, subject_id=str(subject_id))


def get_current_buyer(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> Buyer:
    if identity.role != BUYER_ROLE:
        raise Forbidden("Buyer account required")
    buyer = db.get(Buyer, identity.subject_id)
    if not buyer:
        raise Unauthorized("Buyer not found")
    return buyer


def get_current_seller(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> Seller:
    if identity.role != SELLER_ROLE:
        raise Forbidden("Seller account required")
    seller = db.get(Seller, identity.subject_id)
    if not seller:
        raise Unauthorized("Seller not found")
    return seller
