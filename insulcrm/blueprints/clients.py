"""Clients blueprint (JSON CRUD)."""
from flask import Blueprint, request, jsonify
from insulcrm.database import get_session
from insulcrm.services import crm_service
from insulcrm.services.quote_service import list_quotes, quote_to_dict
from insulcrm.utils.request_data import get_json_payload, int_arg, bool_arg

clients_bp = Blueprint('clients', __name__, url_prefix='/clients')


@clients_bp.route('', methods=['GET'])
def list_clients():
    """List clients (?q= search, ?company_id= filter, ?all=1 includes inactive)."""
    session = get_session()
    clients = crm_service.list_clients(
        session,
        search=request.args.get('q', ''),
        company_id=int_arg('company_id'),
        include_inactive=bool_arg('all'),
    )
    return jsonify({'results': [c.to_dict() for c in clients]})


@clients_bp.route('', methods=['POST'])
def create_client():
    session = get_session()
    client = crm_service.create_client(session, get_json_payload())
    return jsonify(client.to_dict()), 201


@clients_bp.route('/<int:client_id>', methods=['GET'])
def view_client(client_id):
    """Client detail with their current quotes."""
    session = get_session()
    client = crm_service.get_client(session, client_id)
    data = client.to_dict()
    data['quotes'] = [quote_to_dict(q, include_sections=False) for q in list_quotes(session, client_id=client.id)]
    return jsonify(data)


@clients_bp.route('/<int:client_id>', methods=['PUT'])
def update_client(client_id):
    session = get_session()
    client = crm_service.update_client(session, client_id, get_json_payload())
    return jsonify(client.to_dict())


@clients_bp.route('/<int:client_id>', methods=['DELETE'])
def deactivate_client(client_id):
    session = get_session()
    client = crm_service.deactivate_client(session, client_id)
    return jsonify(client.to_dict())
