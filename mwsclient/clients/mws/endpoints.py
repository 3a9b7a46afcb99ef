from dataclasses import dataclass

from mwsclient.clients.mws.errors import UnknownOperation


@dataclass(frozen=True)
class Endpoint:
    """ HTTP method, path, action name and API version of one MWS operation. """
    method: str
    path: str
    action: str
    version: str


# (path, version) per MWS section
_FEEDS = ("/", "2009-01-01")
_REPORTS = ("/", "2009-01-01")
_ORDERS = ("/Orders/2013-09-01", "2013-09-01")
_PRODUCTS = ("/Products/2011-10-01", "2011-10-01")
_FINANCES = ("/Finances/2015-05-01", "2015-05-01")
_INBOUND = ("/FulfillmentInboundShipment/2010-10-01", "2010-10-01")
_INVENTORY = ("/FulfillmentInventory/2010-10-01", "2010-10-01")
_OUTBOUND = ("/FulfillmentOutboundShipment/2010-10-01", "2010-10-01")
_RECOMMENDATIONS = ("/Recommendations/2013-04-01", "2013-04-01")
_SELLERS = ("/Sellers/2011-07-01", "2011-07-01")

_SECTIONS = (
    (_FEEDS, ("SubmitFeed", "GetFeedSubmissionResult")),
    (_REPORTS, ("RequestReport", "GetReportRequestList", "GetReport", "GetReportList")),
    (_ORDERS, ("ListOrders", "ListOrdersByNextToken", "GetOrder", "ListOrderItems")),
    (_PRODUCTS, (
        "GetMyPriceForSKU",
        "GetMyPriceForASIN",
        "GetProductCategoriesForSKU",
        "GetProductCategoriesForASIN",
        "GetMatchingProductForId",
        "ListMatchingProducts",
    )),
    (_FINANCES, ("ListFinancialEvents",)),
    (_INBOUND, (
        "ListInboundShipments",
        "ListInboundShipmentsByNextToken",
        "ListInboundShipmentItems",
        "GetTransportContent",
    )),
    (_INVENTORY, ("ListInventorySupply",)),
    (_OUTBOUND, ("GetFulfillmentOrder",)),
    (_RECOMMENDATIONS, ("ListRecommendations",)),
    (_SELLERS, ("ListMarketplaceParticipations",)),
)

ENDPOINTS: dict[str, Endpoint] = {
    action: Endpoint(method="POST", path=path, action=action, version=version)
    for (path, version), actions in _SECTIONS
    for action in actions
}


def get_endpoint(name: str) -> Endpoint:
    """Returns the endpoint registered under `name`."""
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise UnknownOperation(f"Unknown MWS operation: {name}") from None
