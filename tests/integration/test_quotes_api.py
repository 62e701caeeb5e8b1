"""
Integration tests for quote pricing, persistence, versioning and acceptance.
"""

import re
from datetime import date, timedelta
from decimal import Decimal

from insulcrm.models import Quote, Opportunity, Product


class TestCalculateEndpoint:
    """Unsaved quotes priced on the server."""

    def test_calculate_prices_lines_and_totals(self, client, batts):
        response = client.post('/quotes/calculate', json={
            'pricing_tier': 'Retail',
            'waste_percent': 10,
            'labour_rate': 3,
            'sections': [{
                'custom_name': 'Ceiling',
                'line_items': [
                    {'product_id': batts.id, 'area_sqm': 20},
                    {'is_labour': True, 'area_sqm': 15},
                ],
            }],
        })

        assert response.status_code == 200
        data = response.get_json()
        product_line, labour_line = data['sections'][0]['line_items']

        assert product_line['packs_required'] == 5
        assert product_line['line_cost'] == 600.0
        assert product_line['line_sell'] == 960.0
        assert product_line['margin_percent'] == 37.5
        assert labour_line['line_sell'] == 45.0
        assert labour_line['paired_with'] == product_line['key']

        assert data['totals']['total_sell_ex_gst'] == 1005.0
        assert data['totals']['gst_amount'] == 150.75
        assert data['totals']['total_inc_gst'] == 1155.75

    def test_client_supplied_figures_are_ignored(self, client, batts):
        response = client.post('/quotes/calculate', json={
            'pricing_tier': 'Custom',
            'markup_percent': 25,
            'sections': [{'line_items': [
                {'product_id': batts.id, 'area_sqm': 20, 'line_sell': 1, 'line_cost': 1, 'packs_required': 99},
            ]}],
        })

        line = response.get_json()['sections'][0]['line_items'][0]
        assert line['packs_required'] == 5
        assert line['line_sell'] == 750.0
        assert line['margin_percent'] == 20.0

    def test_unknown_tier_uses_retail_markup(self, client, batts):
        response = client.post('/quotes/calculate', json={
            'pricing_tier': 'Platinum',
            'sections': [{'line_items': [{'product_id': batts.id, 'area_sqm': 20}]}],
        })

        data = response.get_json()
        assert data['pricing_tier'] == 'Platinum'
        assert data['effective_markup_percent'] == 60.0
        assert data['sections'][0]['line_items'][0]['line_sell'] == 960.0

    def test_huge_area_is_priced(self, client, batts):
        response = client.post('/quotes/calculate', json={
            'sections': [{'line_items': [{'product_id': batts.id, 'area_sqm': 1e30}]}],
        })

        assert response.status_code == 200
        assert response.get_json()['sections'][0]['line_items'][0]['line_sell'] > 0

    def test_blank_custom_markup_is_zero(self, client, batts):
        response = client.post('/quotes/calculate', json={
            'pricing_tier': 'Custom',
            'markup_percent': '',
            'sections': [{'line_items': [{'product_id': batts.id, 'area_sqm': 20}]}],
        })

        data = response.get_json()
        assert data['effective_markup_percent'] == 0.0
        assert data['sections'][0]['line_items'][0]['line_sell'] == 600.0

    def test_blank_waste_and_labour_rate_are_zero(self, client, batts):
        response = client.post('/quotes/calculate', json={
            'waste_percent': '',
            'labour_rate': '',
            'sections': [{'line_items': [
                {'product_id': batts.id, 'area_sqm': 18},
                {'is_labour': True, 'area_sqm': 18},
            ]}],
        })

        data = response.get_json()
        assert data['waste_percent'] == 0.0
        assert data['labour_rate'] == 0.0
        product_line, labour_line = data['sections'][0]['line_items']
        assert product_line['packs_required'] == 4
        assert labour_line['line_sell'] == 0.0

    def test_missing_settings_use_defaults(self, client, batts):
        data = client.post('/quotes/calculate', json={
            'markup_percent': None,
            'sections': [{'line_items': [{'product_id': batts.id, 'area_sqm': 20}]}],
        }).get_json()

        assert data['pricing_tier'] == 'Retail'
        assert data['waste_percent'] == 10.0

    def test_manual_line_keeps_entered_values(self, client):
        response = client.post('/quotes/calculate', json={
            'sections': [{'line_items': [
                {'description': 'Scaffolding', 'line_cost': 80, 'line_sell': 120},
            ]}],
        })

        line = response.get_json()['sections'][0]['line_items'][0]
        assert line['line_sell'] == 120.0
        assert line['is_manual'] is True
        assert line['margin_percent'] == 33.3

    def test_labour_products_cannot_be_quoted(self, client, labour_product):
        response = client.post('/quotes/calculate', json={
            'sections': [{'line_items': [{'product_id': labour_product.id, 'area_sqm': 10}]}],
        })

        assert response.status_code == 422
        assert response.get_json()['field'] == 'product_id'

    def test_section_name_and_colour_from_application_type(self, client, ceiling_type):
        response = client.post('/quotes/calculate', json={
            'sections': [{'app_type_id': ceiling_type.id, 'custom_name': 'ignored', 'line_items': []}],
        })

        section = response.get_json()['sections'][0]
        assert section['custom_name'] == 'Ceiling'
        assert section['section_color'] == '#e3f2fd'

    def test_application_type_id_as_string(self, client, ceiling_type):
        response = client.post('/quotes/calculate', json={
            'sections': [{'app_type_id': str(ceiling_type.id), 'line_items': []}],
        })

        section = response.get_json()['sections'][0]
        assert section['custom_name'] == 'Ceiling'
        assert section['app_type_id'] == ceiling_type.id


class TestSelectProductEndpoint:

    def test_selecting_product_adds_labour_line(self, client, batts):
        product_id = batts.id
        response = client.post('/quotes/select-product', json={
            'labour_rate': 3,
            'sections': [{'custom_name': 'Ceiling', 'line_items': [{'area_sqm': 15}]}],
            'section_index': 0,
            'line_index': 0,
            'product_id': product_id,
        })

        assert response.status_code == 200
        lines = response.get_json()['sections'][0]['line_items']
        assert len(lines) == 2
        assert lines[0]['product_id'] == product_id
        assert lines[1]['is_labour'] is True
        assert lines[1]['description'] == 'Labour - Ceiling'
        assert lines[1]['line_sell'] == 45.0

    def test_zero_area_adds_no_labour_line(self, client, batts):
        response = client.post('/quotes/select-product', json={
            'sections': [{'line_items': [{'area_sqm': 0}]}],
            'section_index': 0,
            'line_index': 0,
            'product_id': batts.id,
        })

        lines = response.get_json()['sections'][0]['line_items']
        assert len(lines) == 1

    def test_selecting_on_labour_line_is_rejected(self, client, batts):
        response = client.post('/quotes/select-product', json={
            'sections': [{'line_items': [{'is_labour': True, 'area_sqm': 10}]}],
            'section_index': 0,
            'line_index': 0,
            'product_id': batts.id,
        })

        assert response.status_code == 400

    def test_missing_line_index(self, client, batts):
        response = client.post('/quotes/select-product', json={
            'sections': [],
            'section_index': 0,
            'line_index': 0,
            'product_id': batts.id,
        })

        assert response.status_code == 422


class TestCreateQuote:
    """Persisting quotes."""

    def test_create_quote_stores_computed_values(self, client, session, quote_payload):
        response = client.post('/quotes', json=quote_payload)

        assert response.status_code == 201
        data = response.get_json()
        assert re.match(r'^Q-\d{8}-\d{4}$', data['quote_number'])
        assert data['status'] == 'Draft'
        assert data['version_number'] == 0
        assert data['is_draft'] is True
        assert data['valid_until'] == (date.today() + timedelta(days=30)).isoformat()
        assert data['totals']['total_sell_ex_gst'] == 960.0
        assert data['totals']['total_inc_gst'] == 1104.0

        quote = session.query(Quote).filter(Quote.id == data['id']).one()
        line = quote.sections[0].line_items[0]
        assert line.packs_required == 5
        assert line.line_sell == Decimal('960.00')

    def test_saved_quote_keeps_price_after_catalog_change(self, client, session, quote_payload, batts):
        product_id = batts.id
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        session.query(Product).filter(Product.id == product_id).update({'pack_price': Decimal('999.00')})
        session.commit()

        data = client.get(f'/quotes/{quote_id}').get_json()
        assert data['sections'][0]['line_items'][0]['line_sell'] == 960.0

    def test_quote_numbers_are_unique(self, client, quote_payload):
        first = client.post('/quotes', json=quote_payload).get_json()
        second = client.post('/quotes', json=quote_payload).get_json()

        assert first['quote_number'] != second['quote_number']

    def test_duplicate_explicit_quote_number(self, client, quote_payload):
        payload = dict(quote_payload, quote_number='Q-CUSTOM-1')
        assert client.post('/quotes', json=payload).status_code == 201

        response = client.post('/quotes', json=payload)
        assert response.status_code == 409

    def test_client_is_required(self, client, quote_payload):
        payload = dict(quote_payload)
        del payload['client_id']
        response = client.post('/quotes', json=payload)

        assert response.status_code == 422
        assert response.get_json()['field'] == 'client_id'

    def test_site_address_is_required(self, client, quote_payload):
        response = client.post('/quotes', json=dict(quote_payload, site_address='  '))

        assert response.status_code == 422
        assert response.get_json()['field'] == 'site_address'

    def test_unknown_client(self, client, quote_payload):
        response = client.post('/quotes', json=dict(quote_payload, client_id=999999))
        assert response.status_code == 404

    def test_nothing_saved_on_error(self, client, session, quote_payload):
        payload = dict(quote_payload, sections=[{'line_items': [{'product_id': 999999, 'area_sqm': 5}]}])
        response = client.post('/quotes', json=payload)

        assert response.status_code == 422
        assert session.query(Quote).count() == 0

    def test_linked_opportunity_moves_to_quoted(self, client, session, quote_payload, opportunity):
        opportunity_id = opportunity.id
        response = client.post('/quotes', json=dict(quote_payload, opportunity_id=opportunity_id))

        assert response.status_code == 201
        opp = session.query(Opportunity).filter(Opportunity.id == opportunity_id).one()
        assert opp.stage == 'QUOTED'
        assert opp.estimated_value == Decimal('1104.00')


class TestUpdateQuote:

    def test_tier_change_reprices_stored_lines(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        response = client.put(f'/quotes/{quote_id}', json={'pricing_tier': 'Trade'})

        assert response.status_code == 200
        data = response.get_json()
        assert data['pricing_tier'] == 'Trade'
        assert data['sections'][0]['line_items'][0]['line_sell'] == 840.0
        assert data['totals']['total_sell_ex_gst'] == 840.0

    def test_sections_are_replaced(self, client, quote_payload, underfloor):
        underfloor_id = underfloor.id
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        response = client.put(f'/quotes/{quote_id}', json={
            'sections': [{'custom_name': 'Underfloor', 'line_items': [
                {'product_id': underfloor_id, 'area_sqm': 40},
            ]}],
        })

        sections = response.get_json()['sections']
        assert len(sections) == 1
        assert sections[0]['name'] == 'Underfloor'
        assert sections[0]['line_items'][0]['packs_required'] == 5

    def test_mark_as_sent(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        response = client.put(f'/quotes/{quote_id}', json={'status': 'Sent'})
        assert response.get_json()['status'] == 'Sent'

    def test_cannot_set_accepted_through_update(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        response = client.put(f'/quotes/{quote_id}', json={'status': 'Accepted'})
        assert response.status_code == 422

    def test_accepted_quote_is_locked(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']
        client.post(f'/quotes/{quote_id}/accept')

        response = client.put(f'/quotes/{quote_id}', json={'notes': 'late change'})
        assert response.status_code == 400

    def test_update_missing_quote(self, client):
        assert client.put('/quotes/999999', json={}).status_code == 404


class TestVersioning:
    """Draft and final versions of a quote number."""

    def test_finalize_creates_version_one(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        data = client.post(f'/quotes/{quote_id}/finalize').get_json()
        assert data['version_number'] == 1
        assert data['is_draft'] is False
        assert data['is_current'] is True

    def test_final_cannot_be_finalized_again(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']
        client.post(f'/quotes/{quote_id}/finalize')

        assert client.post(f'/quotes/{quote_id}/finalize').status_code == 400

    def test_final_cannot_be_edited(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']
        client.post(f'/quotes/{quote_id}/finalize')

        assert client.put(f'/quotes/{quote_id}', json={'notes': 'x'}).status_code == 400

    def test_revision_supersedes_previous_final(self, client, session, quote_payload):
        first = client.post('/quotes', json=quote_payload).get_json()
        client.post(f"/quotes/{first['id']}/finalize")

        revision = client.post(f"/quotes/{first['id']}/revise").get_json()
        assert revision['quote_number'] == first['quote_number']
        assert revision['is_draft'] is True

        client.put(f"/quotes/{revision['id']}", json={'pricing_tier': 'VIP'})
        second = client.post(f"/quotes/{revision['id']}/finalize").get_json()

        assert second['version_number'] == 2
        old = session.query(Quote).filter(Quote.id == first['id']).one()
        assert old.is_current is False
        assert old.superseded_at is not None

        listed = client.get('/quotes').get_json()['results']
        assert [q['id'] for q in listed] == [second['id']]

        everything = client.get('/quotes?all=1').get_json()['results']
        assert len(everything) == 2


class TestAcceptQuote:

    def test_accept_marks_opportunity_won(self, client, session, quote_payload, opportunity):
        opportunity_id = opportunity.id
        quote_id = client.post('/quotes', json=dict(quote_payload, opportunity_id=opportunity_id)).get_json()['id']

        response = client.post(f'/quotes/{quote_id}/accept')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'Accepted'
        assert data['accepted_date'] is not None

        opp = session.query(Opportunity).filter(Opportunity.id == opportunity_id).one()
        assert opp.stage == 'WON'
        assert opp.actual_value == Decimal('1104.00')

    def test_cannot_accept_twice(self, client, quote_payload):
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']
        client.post(f'/quotes/{quote_id}/accept')

        response = client.post(f'/quotes/{quote_id}/accept')
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Quote has already been accepted'

    def test_expired_quote_cannot_be_accepted(self, client, quote_payload):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        quote_id = client.post('/quotes', json=dict(quote_payload, valid_until=yesterday)).get_json()['id']

        response = client.post(f'/quotes/{quote_id}/accept')
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Quote has expired'

    def test_superseded_version_cannot_be_accepted(self, client, session, quote_payload, opportunity):
        opportunity_id = opportunity.id
        first = client.post('/quotes', json=dict(quote_payload, opportunity_id=opportunity_id)).get_json()
        client.post(f"/quotes/{first['id']}/finalize")
        revision = client.post(f"/quotes/{first['id']}/revise").get_json()
        client.put(f"/quotes/{revision['id']}", json={'pricing_tier': 'VIP'})
        second = client.post(f"/quotes/{revision['id']}/finalize").get_json()

        response = client.post(f"/quotes/{first['id']}/accept")

        assert response.status_code == 400
        assert 'superseded' in response.get_json()['message']
        opp = session.query(Opportunity).filter(Opportunity.id == opportunity_id).one()
        assert opp.stage == 'QUOTED'
        assert opp.actual_value is None

        assert client.post(f"/quotes/{second['id']}/accept").status_code == 200
        session.expire_all()
        opp = session.query(Opportunity).filter(Opportunity.id == opportunity_id).one()
        assert opp.stage == 'WON'
        assert opp.actual_value == Decimal(str(second['total_inc_gst']))

    def test_closed_opportunity_is_not_marked_won(self, client, session, quote_payload, opportunity):
        opportunity_id = opportunity.id
        quote_id = client.post('/quotes', json=dict(quote_payload, opportunity_id=opportunity_id)).get_json()['id']
        client.delete(f'/opportunities/{opportunity_id}')

        assert client.post(f'/quotes/{quote_id}/accept').status_code == 200

        opp = session.query(Opportunity).filter(Opportunity.id == opportunity_id).one()
        assert opp.is_active is False
        assert opp.stage == 'QUOTED'
        assert opp.actual_value is None


class TestQuoteQueries:

    def test_get_missing_quote(self, client):
        response = client.get('/quotes/999999')

        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'

    def test_filter_by_status_and_search(self, client, quote_payload):
        draft = client.post('/quotes', json=quote_payload).get_json()
        sent = client.post('/quotes', json=dict(quote_payload, reference='PO-778')).get_json()
        client.put(f"/quotes/{sent['id']}", json={'status': 'Sent'})

        by_status = client.get('/quotes?status=Sent').get_json()['results']
        assert [q['id'] for q in by_status] == [sent['id']]

        by_client = client.get('/quotes?q=ngata').get_json()['results']
        assert {q['id'] for q in by_client} == {draft['id'], sent['id']}

        by_reference = client.get('/quotes?q=po-778').get_json()['results']
        assert [q['id'] for q in by_reference] == [sent['id']]

    def test_pdf_download(self, client, quote_payload):
        quote_id = client.post('/quotes', json=dict(quote_payload, notes='Access via side gate & garage')).get_json()['id']

        response = client.get(f'/quotes/{quote_id}/pdf')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    def test_pdf_with_markup_characters_in_contact_details(self, app, client, quote_payload, monkeypatch):
        monkeypatch.setitem(app.config, 'BUSINESS_PHONE', '09 555 0100 <ext 4>')
        monkeypatch.setitem(app.config, 'BUSINESS_EMAIL', 'quotes&sales@example.co.nz')
        quote_id = client.post('/quotes', json=quote_payload).get_json()['id']

        response = client.get(f'/quotes/{quote_id}/pdf')

        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')
