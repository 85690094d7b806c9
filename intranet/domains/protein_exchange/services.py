"""Protein exchange service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from intranet.core.auth.principal import Principal
from intranet.core.utils.validation import jsonable_errors
from intranet.domains.gamification import rules as gamification_rules
from intranet.domains.gamification.services import record_activity
from intranet.domains.protein_exchange.models import ProteinExchange
from intranet.domains.protein_exchange.schemas import BulkResult, ExchangeItem
from intranet.extensions import db

logger = logging.getLogger(__name__)


def list_exchanges(user_id: int, start: Optional[date] = None, end: Optional[date] = None) -> List[ProteinExchange]:
    """The user's exchanges inside the optional inclusive date range, latest day first."""
    query = ProteinExchange.query.filter_by(user_id=user_id)
    if start is not None:
        query = query.filter(ProteinExchange.exchange_date >= start)
    if end is not None:
        query = query.filter(ProteinExchange.exchange_date <= end)
    return query.order_by(ProteinExchange.exchange_date.desc()).all()


def save_bulk(principal: Principal, raw_items: List[Dict[str, Any]]) -> BulkResult:
    """
    Store a batch of exchanges for the caller.

    Invalid items are skipped and reported by index. An item for a day that
    already has an exchange replaces it; only new days earn points.
    """
    result = BulkResult()
    items: List[ExchangeItem] = []
    for index, raw in enumerate(raw_items):
        try:
            items.append(ExchangeItem.model_validate(raw))
        except ValidationError as exc:
            result.skipped.append({"index": index, "details": jsonable_errors(exc)})

    days = {item.exchange_date for item in items}
    by_day: Dict[date, ProteinExchange] = {}
    if days:
        existing = ProteinExchange.query.filter(
            ProteinExchange.user_id == principal.id, ProteinExchange.exchange_date.in_(days)
        ).all()
        by_day = {row.exchange_date: row for row in existing}

    created: List[ProteinExchange] = []
    for item in items:
        row = by_day.get(item.exchange_date)
        if row is None:
            row = ProteinExchange(
                user_id=principal.id,
                user_name=principal.name,
                exchange_date=item.exchange_date,
                original_protein=item.original_protein,
                new_protein=item.new_protein,
            )
            db.session.add(row)
            by_day[item.exchange_date] = row
            created.append(row)
            result.created += 1
        else:
            row.original_protein = item.original_protein
            row.new_protein = item.new_protein
            result.replaced += 1
    db.session.commit()
    logger.info(
        "Protein exchanges for user %s: %d created, %d replaced, %d skipped",
        principal.id,
        result.created,
        result.replaced,
        len(result.skipped),
    )

    for row in created:
        try:
            event = record_activity(
                principal.id,
                gamification_rules.PROTEIN_EXCHANGE,
                f"Troca {row.exchange_date.isoformat()}: {row.original_protein} -> {row.new_protein}",
                metadata={"exchange_id": row.id},
            )
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not award points for protein exchange %s", row.id)
            continue
        if event is not None:
            result.points += event.points
    return result
