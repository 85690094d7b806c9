"""Equipment request service."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from intranet.core.auth.principal import Principal
from intranet.domains.equipment.models import EquipmentRequest
from intranet.domains.equipment.schemas import EquipmentRequestCreate
from intranet.domains.gamification import rules as gamification_rules
from intranet.domains.gamification.services import record_activity
from intranet.extensions import db

logger = logging.getLogger(__name__)


def list_requests() -> List[EquipmentRequest]:
    return EquipmentRequest.query.order_by(EquipmentRequest.created_at.desc(), EquipmentRequest.id.desc()).all()


def list_requests_for(user_id: int) -> List[EquipmentRequest]:
    return (
        EquipmentRequest.query.filter_by(requester_id=user_id)
        .order_by(EquipmentRequest.created_at.desc(), EquipmentRequest.id.desc())
        .all()
    )


def create_request(principal: Principal, data: EquipmentRequestCreate) -> EquipmentRequest:
    item = EquipmentRequest(
        title=data.title,
        description=data.description,
        priority=data.priority,
        requester_id=principal.id,
        requester_name=principal.name,
        requester_email=principal.email,
    )
    db.session.add(item)
    db.session.commit()
    logger.info("Equipment request %s opened by user %s", item.id, principal.id)

    try:
        record_activity(
            principal.id,
            gamification_rules.EQUIPMENT_REQUEST,
            f"Solicitou equipamento: {item.title}",
            metadata={"request_id": item.id},
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not award points for equipment request %s", item.id)
    return item


def set_status(request_id: int, status: str) -> Optional[EquipmentRequest]:
    item = db.session.get(EquipmentRequest, request_id)
    if item is None:
        return None
    if item.status != status:
        logger.info("Equipment request %s: %s -> %s", item.id, item.status, status)
        item.status = status
        db.session.commit()
    return item
