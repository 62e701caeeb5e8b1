"""Catalog blueprint: product picker feed, typeahead search and product maintenance."""
from flask import Blueprint, request, jsonify
from insulcrm.database import get_session
from insulcrm.services import catalog_service
from insulcrm.utils.request_data import get_json_payload
import logging

logger = logging.getLogger(__name__)

catalog_bp = Blueprint('catalog', __name__, url_prefix='/catalog')


@catalog_bp.route('/products', methods=['GET'])
def list_products():
    """
    Products offered to the line-item picker.

    With ?q= the list is a typeahead search (minimum two characters,
    ten results); without it every active non-labour product is returned.
    """
    session = get_session()
    term = request.args.get('q')

    if term is not None:
        products = catalog_service.search_products(session, term)
    else:
        products = catalog_service.list_active_products(session)

    return jsonify({'results': [p.to_dict() for p in products]})


@catalog_bp.route('/products', methods=['POST'])
def create_product():
    session = get_session()
    product = catalog_service.create_product(session, get_json_payload())
    return jsonify(product.to_dict()), 201


@catalog_bp.route('/products/<int:product_id>', methods=['PUT'])
def update_product(product_id):
    session = get_session()
    product = catalog_service.update_product(session, product_id, get_json_payload())
    return jsonify(product.to_dict())


@catalog_bp.route('/application-types', methods=['GET'])
def list_application_types():
    session = get_session()
    app_types = catalog_service.list_application_types(session)
    return jsonify({'results': [at.to_dict() for at in app_types]})
