import pytest
from decimal import Decimal

from insulcrm import create_app
from insulcrm.database import Base, get_session
from insulcrm.models import ApplicationType, Product, Company, Client, Opportunity


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    return get_session()


@pytest.fixture(scope='function', autouse=True)
def clean_tables(app):
    """Empty every table after each test."""
    yield
    session = get_session()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.remove()


@pytest.fixture(scope='function')
def ceiling_type(session):
    app_type = ApplicationType(code='CEILING', name='Ceiling', color_hex='#e3f2fd', sort_order=0)
    session.add(app_type)
    session.commit()
    return app_type


@pytest.fixture(scope='function')
def batts(session):
    """Ceiling batts: $120 per 4.5 m2 pack."""
    product = Product(
        sku='GW-R3.2-CEIL',
        product_description='Glasswool R3.2 Ceiling Batts',
        r_value='R3.2',
        application_type='Ceiling',
        bale_size_sqm=Decimal('4.5'),
        cost_price=Decimal('100.00'),
        retail_price=Decimal('120.00'),
        pack_price=Decimal('120.00'),
        waste_percentage=Decimal('10'),
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def underfloor(session):
    product = Product(
        sku='PE-R1.8-UF',
        product_description='Polyester Underfloor Blanket R1.8',
        r_value='R1.8',
        application_type='Underfloor',
        bale_size_sqm=Decimal('10'),
        cost_price=Decimal('45.00'),
        retail_price=Decimal('72.00'),
        pack_price=Decimal('45.00'),
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def labour_product(session):
    """Catalog labour item; never offered to the product picker."""
    product = Product(
        sku='LABOUR',
        product_description='Installation Labour',
        bale_size_sqm=Decimal('1'),
        cost_price=Decimal('1.50'),
        pack_price=Decimal('3.00'),
        is_labour=True,
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def company(session):
    company = Company(company_name='Harbour Builders', city='Auckland')
    session.add(company)
    session.commit()
    return company


@pytest.fixture(scope='function')
def customer(session, company):
    client = Client(first_name='Aroha', last_name='Ngata', email='aroha@example.com', company_id=company.id)
    session.add(client)
    session.commit()
    return client


@pytest.fixture(scope='function')
def opportunity(session, customer):
    opportunity = Opportunity(
        opp_number='OPP-20260101-0001',
        opportunity_name='Ceiling retrofit',
        client_id=customer.id,
        company_id=customer.company_id,
        stage='NEW',
    )
    session.add(opportunity)
    session.commit()
    return opportunity


@pytest.fixture(scope='function')
def quote_payload(customer, batts):
    """Minimal savable quote: one ceiling section, 20 m2 of batts."""
    return {
        'client_id': customer.id,
        'site_address': '12 Kauri Road',
        'city': 'Auckland',
        'pricing_tier': 'Retail',
        'waste_percent': 10,
        'labour_rate': 3.00,
        'sections': [
            {
                'custom_name': 'Ceiling',
                'line_items': [
                    {'product_id': batts.id, 'area_sqm': 20},
                ],
            },
        ],
    }
