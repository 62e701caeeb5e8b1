"""
Integration tests for companies and clients.
"""


class TestCompanies:
    """Company CRUD."""

    def test_create_company(self, client):
        response = client.post('/companies', json={'company_name': '  Southern Homes ', 'city': 'Dunedin'})

        assert response.status_code == 201
        data = response.get_json()
        assert data['company_name'] == 'Southern Homes'
        assert data['is_active'] is True

    def test_name_required(self, client):
        response = client.post('/companies', json={'city': 'Dunedin'})

        assert response.status_code == 422
        assert response.get_json()['field'] == 'company_name'

    def test_name_unique_case_insensitive(self, client, company):
        response = client.post('/companies', json={'company_name': 'HARBOUR builders'})
        assert response.status_code == 409

    def test_rename_to_own_name_is_allowed(self, client, company):
        company_id = company.id
        response = client.put(f'/companies/{company_id}', json={'company_name': 'Harbour Builders', 'phone': '09 555 0101'})

        assert response.status_code == 200
        assert response.get_json()['phone'] == '09 555 0101'

    def test_view_company_lists_clients(self, client, company, customer):
        company_id = company.id
        data = client.get(f'/companies/{company_id}').get_json()

        assert [c['full_name'] for c in data['clients']] == ['Aroha Ngata']

    def test_search_and_deactivate(self, client, company):
        company_id = company.id
        assert len(client.get('/companies?q=harbour').get_json()['results']) == 1

        response = client.delete(f'/companies/{company_id}')
        assert response.get_json()['is_active'] is False

        assert client.get('/companies').get_json()['results'] == []
        assert len(client.get('/companies?all=1').get_json()['results']) == 1

    def test_missing_company(self, client):
        assert client.get('/companies/999999').status_code == 404


class TestClients:
    """Client CRUD."""

    def test_create_client_with_company(self, client, company):
        company_id = company.id
        response = client.post('/clients', json={
            'first_name': 'Tama', 'last_name': 'Walker', 'company_id': company_id,
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['full_name'] == 'Tama Walker'
        assert data['company_name'] == 'Harbour Builders'

    def test_first_name_required(self, client):
        response = client.post('/clients', json={'last_name': 'Walker'})

        assert response.status_code == 422
        assert response.get_json()['field'] == 'first_name'

    def test_company_must_exist(self, client):
        response = client.post('/clients', json={'first_name': 'Tama', 'company_id': 999999})
        assert response.status_code == 404

    def test_blank_first_name_on_update(self, client, customer):
        customer_id = customer.id
        response = client.put(f'/clients/{customer_id}', json={'first_name': ' '})
        assert response.status_code == 422

    def test_detach_from_company(self, client, customer):
        customer_id = customer.id
        data = client.put(f'/clients/{customer_id}', json={'company_id': None}).get_json()

        assert data['company_id'] is None

    def test_search_by_company_name(self, client, customer):
        results = client.get('/clients?q=harbour').get_json()['results']
        assert [c['first_name'] for c in results] == ['Aroha']

    def test_filter_by_company(self, client, company, customer):
        company_id = company.id
        client.post('/clients', json={'first_name': 'Solo'})

        results = client.get(f'/clients?company_id={company_id}').get_json()['results']
        assert [c['first_name'] for c in results] == ['Aroha']

    def test_view_client_includes_quotes(self, client, customer, quote_payload):
        customer_id = customer.id
        client.post('/quotes', json=quote_payload)

        data = client.get(f'/clients/{customer_id}').get_json()
        assert len(data['quotes']) == 1
        assert data['quotes'][0]['site_address'] == '12 Kauri Road'

    def test_deactivate_client(self, client, customer):
        customer_id = customer.id
        client.delete(f'/clients/{customer_id}')

        assert client.get('/clients').get_json()['results'] == []
