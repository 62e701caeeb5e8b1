"""Opportunity service for the kanban sales pipeline."""
import logging
from datetime import datetime, date
from decimal import Decimal
from typing import Dict, Any, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from insulcrm.models import Opportunity, OpportunityStage, Client, Company
from insulcrm.exceptions import ValidationError, NotFoundError, BusinessLogicError
from insulcrm.utils.number_format import to_non_negative_decimal

logger = logging.getLogger(__name__)

STAGES = [stage.value for stage in OpportunityStage]

# Stages that saving a quote promotes to QUOTED
PRE_QUOTE_STAGES = (OpportunityStage.NEW.value, OpportunityStage.QUALIFIED.value)


def _parse_date(value, field_name: str) -> Optional[date]:
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f'{field_name} must be a date (YYYY-MM-DD)', field=field_name)


def get_opportunity(session: Session, opportunity_id: int) -> Opportunity:
    opportunity = session.query(Opportunity).filter(Opportunity.id == opportunity_id).first()
    if not opportunity:
        raise NotFoundError(f'Opportunity {opportunity_id} not found')
    return opportunity


def generate_opp_number(session: Session) -> str:
    """Generate a unique opportunity number: OPP-YYYYMMDD-NNNN."""
    prefix = f"OPP-{datetime.now().strftime('%Y%m%d')}-"
    count = session.query(Opportunity).filter(Opportunity.opp_number.like(f'{prefix}%')).count()
    sequence = count + 1
    while session.query(Opportunity.id).filter(Opportunity.opp_number == f'{prefix}{sequence:04d}').first():
        sequence += 1
    return f'{prefix}{sequence:04d}'


def create_opportunity(session: Session, data: Dict[str, Any]) -> Opportunity:
    """Create an opportunity in the NEW column."""
    client_id = data.get('client_id')
    if not client_id:
        raise ValidationError('A client is required', field='client_id')

    client = session.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError(f'Client {client_id} not found')

    company_id = data.get('company_id') or client.company_id
    if company_id and not session.query(Company.id).filter(Company.id == company_id).first():
        raise NotFoundError(f'Company {company_id} not found')

    estimated = data.get('estimated_value')

    try:
        opportunity = Opportunity(
            opp_number=generate_opp_number(session),
            opportunity_name=(data.get('opportunity_name') or '').strip() or None,
            client_id=client.id,
            company_id=company_id,
            stage=OpportunityStage.NEW.value,
            sub_status=(data.get('sub_status') or '').strip() or None,
            site_address=(data.get('site_address') or '').strip() or None,
            site_city=(data.get('site_city') or '').strip() or None,
            site_postcode=(data.get('site_postcode') or '').strip() or None,
            estimated_value=to_non_negative_decimal(estimated) if estimated not in (None, '') else None,
            due_date=_parse_date(data.get('due_date'), 'due_date'),
            follow_up_date=_parse_date(data.get('follow_up_date'), 'follow_up_date'),
            opportunity_source=(data.get('opportunity_source') or '').strip() or None,
            notes=(data.get('notes') or '').strip() or None,
        )
        session.add(opportunity)
        session.commit()
        logger.info(f"[PIPELINE] Opportunity {opportunity.opp_number} created for client {client.id}")
        return opportunity
    except Exception:
        session.rollback()
        raise


def move_to_stage(session: Session, opportunity_id: int, stage: str,
                  sub_status: Optional[str] = None) -> Opportunity:
    """Move an opportunity to another kanban column."""
    stage = (stage or '').strip().upper()
    if stage not in STAGES:
        raise ValidationError(f"Unknown stage '{stage}'. Valid stages: {', '.join(STAGES)}", field='stage')

    opportunity = get_opportunity(session, opportunity_id)
    if not opportunity.is_active:
        raise BusinessLogicError('Closed opportunities cannot be moved')

    if opportunity.stage == stage and sub_status is None:
        return opportunity

    try:
        previous = opportunity.stage
        opportunity.stage = stage
        if sub_status is not None:
            opportunity.sub_status = sub_status.strip() or None
        session.commit()
        logger.info(f"[PIPELINE] {opportunity.opp_number}: {previous} -> {stage}")
        return opportunity
    except Exception:
        session.rollback()
        raise


def mark_quoted(opportunity: Opportunity, quoted_value: Decimal) -> None:
    """Record a saved quote on its opportunity (caller commits)."""
    if opportunity.stage in PRE_QUOTE_STAGES:
        opportunity.stage = OpportunityStage.QUOTED.value
    if opportunity.is_open:
        opportunity.estimated_value = quoted_value


def mark_won(opportunity: Opportunity, accepted_value: Decimal) -> None:
    """Record an accepted quote on its opportunity (caller commits)."""
    if not opportunity.is_active or opportunity.stage == OpportunityStage.LOST.value:
        return
    opportunity.stage = OpportunityStage.WON.value
    opportunity.actual_value = accepted_value


def close_opportunity(session: Session, opportunity_id: int) -> Opportunity:
    """Soft-delete: hide the opportunity from the board."""
    opportunity = get_opportunity(session, opportunity_id)
    try:
        opportunity.is_active = False
        session.commit()
        return opportunity
    except Exception:
        session.rollback()
        raise


def kanban_board(session: Session, search: str = '', client_id: Optional[int] = None) -> Dict[str, List[Opportunity]]:
    """Active opportunities grouped by stage, newest first in each column."""
    query = session.query(Opportunity).filter(Opportunity.is_active.is_(True))

    if client_id:
        query = query.filter(Opportunity.client_id == client_id)

    search = (search or '').strip().lower()
    if search:
        pattern = f'%{search}%'
        query = query.outerjoin(Client, Opportunity.client_id == Client.id).filter(
            or_(
                func.lower(Opportunity.opp_number).like(pattern),
                func.lower(Opportunity.opportunity_name).like(pattern),
                func.lower(Opportunity.site_address).like(pattern),
                func.lower(Client.first_name).like(pattern),
                func.lower(Client.last_name).like(pattern),
            )
        )

    board: Dict[str, List[Opportunity]] = {stage: [] for stage in STAGES}
    for opportunity in query.order_by(Opportunity.created_at.desc(), Opportunity.id.desc()).all():
        board.setdefault(opportunity.stage, []).append(opportunity)
    return board
