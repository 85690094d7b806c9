"""Reception appointment service."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from intranet.core.auth.principal import Principal
from intranet.domains.gamification import rules as gamification_rules
from intranet.domains.gamification.services import record_activity
from intranet.domains.reception.models import ReceptionAppointment
from intranet.domains.reception.schemas import AppointmentCreate
from intranet.extensions import db

logger = logging.getLogger(__name__)


def list_appointments(limit: int = 20) -> List[ReceptionAppointment]:
    """Latest appointments, most recent visit first."""
    return (
        ReceptionAppointment.query.order_by(
            ReceptionAppointment.visit_date.desc(),
            ReceptionAppointment.visit_time.desc(),
            ReceptionAppointment.id.desc(),
        )
        .limit(limit)
        .all()
    )


def create_appointment(principal: Principal, data: AppointmentCreate) -> ReceptionAppointment:
    appointment = ReceptionAppointment(
        visitor_name=data.visitor_name,
        visitor_document=(data.visitor_document or "").strip() or None,
        visit_date=data.visit_date,
        visit_time=data.visit_time,
        note=(data.note or "").strip() or None,
        created_by_id=principal.id,
        created_by_name=principal.name,
    )
    db.session.add(appointment)
    db.session.commit()
    logger.info("Reception appointment %s created by user %s", appointment.id, principal.id)

    try:
        record_activity(
            principal.id,
            gamification_rules.RECEPTION_APPOINTMENT,
            f"Agendou visita de {appointment.visitor_name}",
            metadata={"appointment_id": appointment.id},
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not award points for appointment %s", appointment.id)
    return appointment
