"""Models package - exports all SQLAlchemy models."""
# Catalog
from insulcrm.models.product import Product
from insulcrm.models.application_type import ApplicationType

# CRM
from insulcrm.models.company import Company
from insulcrm.models.client import Client
from insulcrm.models.opportunity import Opportunity, OpportunityStage

# Quotes
from insulcrm.models.quote import Quote, QuoteStatus, EDITABLE_STATUSES
from insulcrm.models.quote_section import QuoteSection
from insulcrm.models.quote_line_item import QuoteLineItem

__all__ = [
    'Product', 'ApplicationType',
    'Company', 'Client', 'Opportunity', 'OpportunityStage',
    'Quote', 'QuoteStatus', 'EDITABLE_STATUSES', 'QuoteSection', 'QuoteLineItem',
]
