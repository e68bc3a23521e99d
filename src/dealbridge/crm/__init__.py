"""CRM integration layer -- HubSpot deal reads used for project enrichment.

The client is optional: without a HUBSPOT_ACCESS_TOKEN the workflow names
projects with defaults instead of calling HubSpot.
"""

from src.dealbridge.crm.hubspot import HubSpotClient

__all__ = ["HubSpotClient"]
