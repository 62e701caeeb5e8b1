"""Opportunities blueprint: kanban pipeline board and stage moves."""
from flask import Blueprint, request, jsonify
from insulcrm.database import get_session
from insulcrm.services import opportunity_service
from insulcrm.services.quote_service import quote_to_dict
from insulcrm.utils.request_data import get_json_payload, int_arg

opportunities_bp = Blueprint('opportunities', __name__, url_prefix='/opportunities')


@opportunities_bp.route('', methods=['GET'])
def board():
    """Active opportunities grouped by stage (?q= search, ?client_id= filter)."""
    session = get_session()
    columns = opportunity_service.kanban_board(
        session,
        search=request.args.get('q', ''),
        client_id=int_arg('client_id'),
    )
    return jsonify({
        'stages': opportunity_service.STAGES,
        'board': {stage: [o.to_dict() for o in items] for stage, items in columns.items()},
    })


@opportunities_bp.route('', methods=['POST'])
def create_opportunity():
    session = get_session()
    opportunity = opportunity_service.create_opportunity(session, get_json_payload())
    return jsonify(opportunity.to_dict()), 201


@opportunities_bp.route('/<int:opportunity_id>', methods=['GET'])
def view_opportunity(opportunity_id):
    session = get_session()
    opportunity = opportunity_service.get_opportunity(session, opportunity_id)
    data = opportunity.to_dict()
    data['quotes'] = [quote_to_dict(q, include_sections=False) for q in opportunity.quotes]
    return jsonify(data)


@opportunities_bp.route('/<int:opportunity_id>/stage', methods=['POST'])
def move_stage(opportunity_id):
    """Move a card to another column."""
    session = get_session()
    payload = get_json_payload()
    opportunity = opportunity_service.move_to_stage(
        session,
        opportunity_id,
        payload.get('stage'),
        sub_status=payload.get('sub_status'),
    )
    return jsonify(opportunity.to_dict())


@opportunities_bp.route('/<int:opportunity_id>', methods=['DELETE'])
def close_opportunity(opportunity_id):
    session = get_session()
    opportunity = opportunity_service.close_opportunity(session, opportunity_id)
    return jsonify(opportunity.to_dict())
