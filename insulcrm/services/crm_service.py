"""CRM service for companies and client contacts."""
import logging
from typing import Dict, Any, List, Optional

from sqlalchemy import or_, func, cast, String
from sqlalchemy.orm import Session

from insulcrm.models import Company, Client
from insulcrm.exceptions import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ('company_name', 'site_address', 'city', 'postcode', 'phone', 'email', 'notes')
CLIENT_FIELDS = ('first_name', 'last_name', 'email', 'phone', 'client_type', 'notes')


def _clean(data: Dict[str, Any], fields, partial: bool) -> Dict[str, Any]:
    """Strip text inputs; blanks become None."""
    values = {}
    for name in fields:
        if partial and name not in data:
            continue
        raw = data.get(name)
        values[name] = (str(raw).strip() if raw is not None else '') or None
    return values


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------

def _validate_company_name(session: Session, name: Optional[str], exclude_id: Optional[int] = None) -> None:
    """Company name is required and unique (case-insensitive)."""
    if not name:
        raise ValidationError('Company name is required', field='company_name')

    query = session.query(Company).filter(func.lower(Company.company_name) == name.lower())
    if exclude_id:
        query = query.filter(Company.id != exclude_id)
    if query.first():
        raise ConflictError(f"A company named '{name}' already exists")


def get_company(session: Session, company_id: int) -> Company:
    company = session.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise NotFoundError(f'Company {company_id} not found')
    return company


def list_companies(session: Session, search: str = '', include_inactive: bool = False) -> List[Company]:
    query = session.query(Company)
    if not include_inactive:
        query = query.filter(Company.is_active.is_(True))

    search = (search or '').strip().lower()
    if search:
        pattern = f'%{search}%'
        query = query.filter(
            or_(
                func.lower(Company.company_name).like(pattern),
                func.lower(Company.city).like(pattern),
                func.lower(Company.phone).like(pattern),
                func.lower(Company.email).like(pattern),
            )
        )
    return query.order_by(Company.company_name).all()


def create_company(session: Session, data: Dict[str, Any]) -> Company:
    values = _clean(data, COMPANY_FIELDS, partial=False)
    _validate_company_name(session, values['company_name'])

    try:
        company = Company(**values)
        session.add(company)
        session.commit()
        logger.info(f"[CRM] Company created: {company.company_name} ({company.id})")
        return company
    except Exception:
        session.rollback()
        raise


def update_company(session: Session, company_id: int, data: Dict[str, Any]) -> Company:
    company = get_company(session, company_id)
    values = _clean(data, COMPANY_FIELDS, partial=True)
    if 'company_name' in values:
        _validate_company_name(session, values['company_name'], exclude_id=company.id)

    try:
        for name, value in values.items():
            setattr(company, name, value)
        if 'is_active' in data:
            company.is_active = bool(data['is_active'])
        session.commit()
        return company
    except Exception:
        session.rollback()
        raise


def deactivate_company(session: Session, company_id: int) -> Company:
    company = get_company(session, company_id)
    try:
        company.is_active = False
        session.commit()
        return company
    except Exception:
        session.rollback()
        raise


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

def _validate_company_ref(session: Session, company_id) -> Optional[int]:
    if company_id in (None, ''):
        return None
    company = session.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise NotFoundError(f'Company {company_id} not found')
    return company.id


def get_client(session: Session, client_id: int) -> Client:
    client = session.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError(f'Client {client_id} not found')
    return client


def list_clients(session: Session, search: str = '', company_id: Optional[int] = None,
                 include_inactive: bool = False) -> List[Client]:
    query = session.query(Client)
    if not include_inactive:
        query = query.filter(Client.is_active.is_(True))
    if company_id:
        query = query.filter(Client.company_id == company_id)

    search = (search or '').strip()
    if search:
        pattern = f'%{search.lower()}%'
        query = query.outerjoin(Company, Client.company_id == Company.id).filter(
            or_(
                func.lower(Client.first_name).like(pattern),
                func.lower(Client.last_name).like(pattern),
                func.lower(Client.email).like(pattern),
                func.lower(Client.phone).like(pattern),
                func.lower(Company.company_name).like(pattern),
                cast(Client.id, String).like(f'%{search}%'),
            )
        )
    return query.order_by(Client.first_name, Client.last_name).all()


def create_client(session: Session, data: Dict[str, Any]) -> Client:
    values = _clean(data, CLIENT_FIELDS, partial=False)
    if not values['first_name']:
        raise ValidationError('First name is required', field='first_name')
    values['company_id'] = _validate_company_ref(session, data.get('company_id'))

    try:
        client = Client(**values)
        session.add(client)
        session.commit()
        logger.info(f"[CRM] Client created: {client.full_name} ({client.id})")
        return client
    except Exception:
        session.rollback()
        raise


def update_client(session: Session, client_id: int, data: Dict[str, Any]) -> Client:
    client = get_client(session, client_id)
    values = _clean(data, CLIENT_FIELDS, partial=True)
    if 'first_name' in values and not values['first_name']:
        raise ValidationError('First name is required', field='first_name')
    if 'company_id' in data:
        values['company_id'] = _validate_company_ref(session, data.get('company_id'))

    try:
        for name, value in values.items():
            setattr(client, name, value)
        if 'is_active' in data:
            client.is_active = bool(data['is_active'])
        session.commit()
        return client
    except Exception:
        session.rollback()
        raise


def deactivate_client(session: Session, client_id: int) -> Client:
    client = get_client(session, client_id)
    try:
        client.is_active = False
        session.commit()
        return client
    except Exception:
        session.rollback()
        raise
