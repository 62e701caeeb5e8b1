"""Quotes blueprint: live pricing, persistence, versioning, acceptance and PDF."""
from flask import Blueprint, request, jsonify, send_file, current_app
from insulcrm.database import get_session
from insulcrm.exceptions import ValidationError
from insulcrm.services.quote_service import (
    draft_from_payload,
    draft_to_dict,
    select_product_in_draft,
    list_quotes as list_quotes_service,
    get_quote as get_quote_service,
    create_quote as create_quote_service,
    update_quote as update_quote_service,
    finalize_quote as finalize_quote_service,
    revise_quote as revise_quote_service,
    accept_quote as accept_quote_service,
    quote_to_dict,
    generate_quote_pdf_from_db,
)
from insulcrm.utils.request_data import get_json_payload, int_arg, bool_arg

quotes_bp = Blueprint('quotes', __name__, url_prefix='/quotes')


def _business_info():
    """Business info from config, used on the PDF."""
    return {
        'name': current_app.config.get('BUSINESS_NAME', ''),
        'address': current_app.config.get('BUSINESS_ADDRESS', ''),
        'phone': current_app.config.get('BUSINESS_PHONE', ''),
        'email': current_app.config.get('BUSINESS_EMAIL', ''),
        'valid_days': current_app.config.get('QUOTE_VALID_DAYS', 30),
        'gst_rate': current_app.config.get('GST_RATE'),
    }


def _index(payload, name):
    value = payload.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{name} must be an integer', field=name)
    return value


@quotes_bp.route('/calculate', methods=['POST'])
def calculate():
    """
    Price an unsaved quote.

    Accepts the editor's settings and sections, returns every line and
    total recomputed on the server.
    """
    db_session = get_session()
    draft = draft_from_payload(get_json_payload(), db_session, current_app.config)
    return jsonify(draft_to_dict(draft))


@quotes_bp.route('/select-product', methods=['POST'])
def select_product():
    """Pick a product on one line of an unsaved quote; its labour line follows."""
    db_session = get_session()
    payload = get_json_payload()

    draft = draft_from_payload(payload, db_session, current_app.config)
    draft = select_product_in_draft(
        draft,
        _index(payload, 'section_index'),
        _index(payload, 'line_index'),
        payload.get('product_id'),
        db_session,
    )
    return jsonify(draft_to_dict(draft))


@quotes_bp.route('', methods=['GET'])
def list_quotes():
    """List quotes with filters (?status=, ?q=, ?client_id=, ?all=1)."""
    db_session = get_session()
    quotes = list_quotes_service(
        db_session,
        status=request.args.get('status', '').strip(),
        search=request.args.get('q', ''),
        client_id=int_arg('client_id'),
        include_superseded=bool_arg('all'),
    )
    return jsonify({'results': [quote_to_dict(q, include_sections=False) for q in quotes]})


@quotes_bp.route('', methods=['POST'])
def create_quote():
    db_session = get_session()
    quote = create_quote_service(get_json_payload(), db_session, current_app.config)
    return jsonify(quote_to_dict(quote)), 201


@quotes_bp.route('/<int:quote_id>', methods=['GET'])
def view_quote(quote_id):
    db_session = get_session()
    return jsonify(quote_to_dict(get_quote_service(db_session, quote_id)))


@quotes_bp.route('/<int:quote_id>', methods=['PUT'])
def update_quote(quote_id):
    db_session = get_session()
    quote = update_quote_service(quote_id, get_json_payload(), db_session, current_app.config)
    return jsonify(quote_to_dict(quote))


@quotes_bp.route('/<int:quote_id>/finalize', methods=['POST'])
def finalize_quote(quote_id):
    db_session = get_session()
    return jsonify(quote_to_dict(finalize_quote_service(quote_id, db_session)))


@quotes_bp.route('/<int:quote_id>/revise', methods=['POST'])
def revise_quote(quote_id):
    db_session = get_session()
    return jsonify(quote_to_dict(revise_quote_service(quote_id, db_session))), 201


@quotes_bp.route('/<int:quote_id>/accept', methods=['POST'])
def accept_quote(quote_id):
    db_session = get_session()
    return jsonify(quote_to_dict(accept_quote_service(quote_id, db_session)))


@quotes_bp.route('/<int:quote_id>/pdf')
def download_pdf(quote_id):
    """Generate and download the PDF for a saved quote."""
    db_session = get_session()
    quote = get_quote_service(db_session, quote_id)

    pdf_buffer = generate_quote_pdf_from_db(quote_id, db_session, _business_info())

    suffix = '' if quote.is_draft else f'_v{quote.version_number}'
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"quote_{quote.quote_number}{suffix}.pdf"
    )
