"""Companies blueprint (JSON CRUD)."""
from flask import Blueprint, request, jsonify
from insulcrm.database import get_session
from insulcrm.services import crm_service
from insulcrm.utils.request_data import get_json_payload, bool_arg

companies_bp = Blueprint('companies', __name__, url_prefix='/companies')


@companies_bp.route('', methods=['GET'])
def list_companies():
    """List companies (?q= search, ?all=1 includes inactive)."""
    session = get_session()
    companies = crm_service.list_companies(
        session,
        search=request.args.get('q', ''),
        include_inactive=bool_arg('all'),
    )
    return jsonify({'results': [c.to_dict() for c in companies]})


@companies_bp.route('', methods=['POST'])
def create_company():
    session = get_session()
    company = crm_service.create_company(session, get_json_payload())
    return jsonify(company.to_dict()), 201


@companies_bp.route('/<int:company_id>', methods=['GET'])
def view_company(company_id):
    session = get_session()
    company = crm_service.get_company(session, company_id)
    data = company.to_dict()
    data['clients'] = [c.to_dict() for c in company.clients if c.is_active]
    return jsonify(data)


@companies_bp.route('/<int:company_id>', methods=['PUT'])
def update_company(company_id):
    session = get_session()
    company = crm_service.update_company(session, company_id, get_json_payload())
    return jsonify(company.to_dict())


@companies_bp.route('/<int:company_id>', methods=['DELETE'])
def deactivate_company(company_id):
    session = get_session()
    company = crm_service.deactivate_company(session, company_id)
    return jsonify(company.to_dict())
