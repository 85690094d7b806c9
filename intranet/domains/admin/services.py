"""Admin dashboard aggregation."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app

from intranet.core.users.models import User
from intranet.domains.admin.schemas import DashboardCounters, DashboardResponse
from intranet.domains.equipment.models import EquipmentRequest
from intranet.domains.gamification.mappers import map_profile
from intranet.domains.gamification.services import top_users
from intranet.domains.mural.models import MuralPost
from intranet.domains.protein_exchange.models import ProteinExchange
from intranet.domains.reception.models import ReceptionAppointment
from intranet.domains.reservations.models import Booking


def _portal_now() -> datetime:
    zone = ZoneInfo(current_app.config.get("PORTAL_TIMEZONE") or "UTC")
    return datetime.now(zone).replace(tzinfo=None)


def dashboard(ranking_limit: int = 10) -> DashboardResponse:
    counters = DashboardCounters(
        active_users=User.query.filter_by(is_active=True).count(),
        mural_posts=MuralPost.query.filter_by(is_active=True).count(),
        bookings=Booking.query.count(),
        upcoming_bookings=Booking.query.filter(Booking.end_time > _portal_now()).count(),
        equipment_requests=EquipmentRequest.query.count(),
        pending_equipment_requests=EquipmentRequest.query.filter_by(status="pending").count(),
        protein_exchanges=ProteinExchange.query.count(),
        reception_appointments=ReceptionAppointment.query.count(),
    )
    ranking = [map_profile(profile, position) for position, profile in enumerate(top_users(ranking_limit), start=1)]
    return DashboardResponse(counters=counters, ranking=ranking)
