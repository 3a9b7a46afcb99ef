import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mwsclient.clients.mws.base import MWSBaseClient
from mwsclient.clients.mws.errors import RequestError, ValidationError
from mwsclient.clients.mws.feeds import (
    FULFILLMENT_ORDER_HEADER,
    SHIPPING_CONFIRMATION_HEADER,
    build_envelope,
    build_flat_file,
    build_price_messages,
    encode_feed,
    format_date,
)
from mwsclient.clients.mws.parsers import (
    ATTRIBUTES_KEY,
    as_list,
    clean_product_xml,
    dig,
    parse_tab_delimited,
    text_of,
    xml_to_dict,
)

logger = logging.getLogger(__name__)

# A truncated listing page is only reported with its token once it holds this many items.
PAGE_SIZE_THRESHOLD = 50

MAX_PRICE_IDS = 20
MAX_ORDER_IDS = 50
MAX_SHIPMENT_IDS = 50
MAX_INVENTORY_SKUS = 50
MAX_MATCHING_IDS = 5

REPORT_DONE = "_DONE_"
REPORT_DONE_NO_DATA = "_DONE_NO_DATA_"


@dataclass
class Page:
    """One page of a paginated listing plus the token for the next page."""
    items: list
    next_token: str


@dataclass
class MatchingProducts:
    """Products found per requested id, and the ids MWS could not match."""
    found: dict[str, list[dict]] = field(default_factory=dict)
    not_found: list[str] = field(default_factory=list)


def _enumerate_param(prefix: str, values: Iterable) -> dict[str, Any]:
    """
    Numbers `values` the way MWS expects list parameters.

    _enumerate_param("ASINList.ASIN", ["A", "B"])
    returns {"ASINList.ASIN.1": "A", "ASINList.ASIN.2": "B"}
    """
    return {f"{prefix}.{number}": value for number, value in enumerate(values, start=1)}


def _check_size(values: Sequence, limit: int, label: str) -> None:
    if len(values) > limit:
        raise ValidationError(f"Maximum number of {label} is {limit}, got {len(values)}")


def _check_date(value: Any, name: str) -> None:
    if value is not None and not isinstance(value, datetime):
        raise ValidationError(f"{name} should be a datetime, got {type(value).__name__}")


def _paginate(items: list, token: str | None) -> list | Page:
    if token and len(items) >= PAGE_SIZE_THRESHOLD:
        return Page(items=items, next_token=token)
    return items


def _status(result: dict) -> str | None:
    return dig(result, ATTRIBUTES_KEY, "status")


class MWSClient(MWSBaseClient):
    """
    Amazon MWS operations.

    Each method builds the operation's parameters, validates vendor limits
    before anything is sent, calls `execute` and unwraps the response
    envelope into plain lists and dicts.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._debug_next_feed = False

    def _call(self, operation: str, query: dict | None = None, body: bytes | None = None) -> dict:
        """`execute` for operations that always answer with an XML envelope."""
        response = self.execute(operation, query, body=body)
        if not isinstance(response, dict):
            raise RequestError(f"Unexpected non-XML response to {operation}")
        return response

    # pricing and products

    def get_sku_price(self, skus: Sequence[str]) -> dict[str, list | bool]:
        """
        Returns pricing for your own offers, keyed by SKU.

        Each SKU maps to its list of offers, to [] when the lookup succeeded
        without offers, or to False when MWS reported an error for it.
        """
        _check_size(skus, MAX_PRICE_IDS, "SKUs")
        query = {"MarketplaceId": self.config.marketplace_id}
        query.update(_enumerate_param("SellerSKUList.SellerSKU", skus))

        response = self._call("GetMyPriceForSKU", query)

        prices = {}
        for product in as_list(response.get("GetMyPriceForSKUResult")):
            sku = dig(product, ATTRIBUTES_KEY, "SellerSKU")
            if _status(product) == "Success":
                prices[sku] = as_list(dig(product, "Product", "Offers", "Offer"))
            else:
                prices[sku] = False
        return prices

    def get_asin_price(self, asins: Sequence[str]) -> dict[str, list | bool]:
        """
        Returns pricing for your own offers, keyed by ASIN.

        An ASIN maps to False when MWS reported an error or returned no offers.
        """
        _check_size(asins, MAX_PRICE_IDS, "ASINs")
        query = {"MarketplaceId": self.config.marketplace_id}
        query.update(_enumerate_param("ASINList.ASIN", asins))

        response = self._call("GetMyPriceForASIN", query)

        prices = {}
        for product in as_list(response.get("GetMyPriceForASINResult")):
            asin = dig(product, ATTRIBUTES_KEY, "ASIN")
            offers = dig(product, "Product", "Offers", "Offer")
            if _status(product) == "Success" and offers is not None:
                prices[asin] = as_list(offers)
            else:
                prices[asin] = False
        return prices

    def get_product_categories_for_sku(self, sku: str) -> dict | None:
        response = self._call("GetProductCategoriesForSKU", {
            "MarketplaceId": self.config.marketplace_id,
            "SellerSKU": sku,
        })
        return dig(response, "GetProductCategoriesForSKUResult", "Self")

    def get_product_categories_for_asin(self, asin: str) -> dict | None:
        response = self._call("GetProductCategoriesForASIN", {
            "MarketplaceId": self.config.marketplace_id,
            "ASIN": asin,
        })
        return dig(response, "GetProductCategoriesForASINResult", "Self")

    def get_matching_product_for_id(self, ids: Sequence[str], id_type: str = "ASIN") -> MatchingProducts:
        """
        Looks up products by ASIN, GCID, SellerSKU, UPC, EAN, ISBN or JAN.

        Duplicate ids are sent once. Products are flattened to their plain
        item attributes plus ASIN, images, parentage and sales rank.
        """
        ids = list(dict.fromkeys(ids))
        _check_size(ids, MAX_MATCHING_IDS, "ids")

        query = {
            "MarketplaceId": self.config.marketplace_id,
            "IdType": id_type,
        }
        query.update(_enumerate_param("IdList.Id", ids))

        raw = self.execute("GetMatchingProductForId", query, raw=True)
        response = xml_to_dict(clean_product_xml(raw))

        matches = MatchingProducts()
        for result in as_list(response.get("GetMatchingProductForIdResult")):
            requested_id = dig(result, ATTRIBUTES_KEY, "Id")
            if _status(result) != "Success":
                matches.not_found.append(requested_id)
                continue
            for product in as_list(dig(result, "Products", "Product")):
                matches.found.setdefault(requested_id, []).append(_flatten_product(product))
        return matches

    def list_matching_products(self, query: str, query_context_id: str | None = None) -> dict:
        """Products ordered by relevancy for a free-text search."""
        if not query or not query.strip():
            raise ValidationError("Missing query")

        raw = self.execute("ListMatchingProducts", {
            "MarketplaceId": self.config.marketplace_id,
            "Query": query,
            "QueryContextId": query_context_id,
        }, raw=True)
        response = xml_to_dict(clean_product_xml(raw))
        return response.get("ListMatchingProductsResult") or {}

    # orders

    def get_orders(
        self,
        start: datetime,
        end: datetime,
        date_type: str = "Update",
        statuses: Iterable[str] = ("Pending", "Shipped", "Canceled"),
        fulfillment_channels: Iterable[str] = ("MFN", "AFN"),
    ) -> list | Page:
        """
        Orders created or updated in a time window.

        `date_type` "Update" filters on last update, anything else on creation.
        A full page is returned as a Page so the caller can continue with
        get_orders_by_next_token.
        """
        if date_type == "Update":
            query = {
                "LastUpdatedAfter": format_date(start),
                "LastUpdatedBefore": format_date(end),
            }
        else:
            query = {
                "CreatedAfter": format_date(start),
                "CreatedBefore": format_date(end),
            }
        query.update(_enumerate_param("OrderStatus.Status", statuses))
        query.update(_enumerate_param("FulfillmentChannel.Channel", fulfillment_channels))

        response = self._call("ListOrders", query)
        return self._orders_page(response.get("ListOrdersResult"))

    def get_orders_by_next_token(self, next_token: str) -> list | Page:
        response = self._call("ListOrdersByNextToken", {"NextToken": next_token})
        return self._orders_page(response.get("ListOrdersByNextTokenResult"))

    def _orders_page(self, result: dict | None) -> list | Page:
        orders = as_list(dig(result, "Orders", "Order"))
        return _paginate(orders, dig(result, "NextToken"))

    def get_order(self, order_id: str) -> dict:
        response = self._call("GetOrder", {"AmazonOrderId.Id.1": order_id})
        return dig(response, "GetOrderResult", "Orders", "Order", default={})

    def get_order_list(self, order_ids: Sequence[str]) -> list:
        if not order_ids:
            return []
        _check_size(order_ids, MAX_ORDER_IDS, "AmazonOrderIds")

        response = self._call("GetOrder", _enumerate_param("AmazonOrderId.Id", order_ids))
        return as_list(dig(response, "GetOrderResult", "Orders", "Order"))

    def get_order_items(self, order_id: str) -> list:
        if not order_id:
            raise ValidationError("The query AmazonOrderId is not specified")
        response = self._call("ListOrderItems", {"AmazonOrderId": order_id})
        return as_list(dig(response, "ListOrderItemsResult", "OrderItems", "OrderItem"))

    def get_order_finance(self, order_id: str) -> dict:
        response = self._call("ListFinancialEvents", {"AmazonOrderId": order_id})
        return dig(response, "ListFinancialEventsResult", "FinancialEvents", default={})

    def get_mc_order(self, seller_fulfillment_order_id: str) -> dict:
        """Multi-channel fulfillment order with its items and shipments."""
        response = self._call("GetFulfillmentOrder", {
            "SellerFulfillmentOrderId": seller_fulfillment_order_id,
        })
        return response.get("GetFulfillmentOrderResult") or {}

    # inbound shipments and inventory

    def list_inbound_shipments(
        self,
        shipment_ids: Sequence[str] = (),
        statuses: Sequence[str] = (),
        updated_after: datetime | None = None,
        updated_before: datetime | None = None,
    ) -> list | Page:
        _check_size(shipment_ids, MAX_SHIPMENT_IDS, "ShipmentIds")
        _check_date(updated_after, "updated_after")
        _check_date(updated_before, "updated_before")

        query = _enumerate_param("ShipmentIdList.member", shipment_ids)
        query.update(_enumerate_param("ShipmentStatusList.member", statuses))
        if updated_after:
            query["LastUpdatedAfter"] = format_date(updated_after)
        if updated_before:
            query["LastUpdatedBefore"] = format_date(updated_before)

        response = self._call("ListInboundShipments", query)
        return self._shipments_page(response.get("ListInboundShipmentsResult"))

    def list_inbound_shipments_by_next_token(self, next_token: str) -> list | Page:
        response = self._call("ListInboundShipmentsByNextToken", {"NextToken": next_token})
        return self._shipments_page(response.get("ListInboundShipmentsByNextTokenResult"))

    def _shipments_page(self, result: dict | None) -> list | Page:
        shipments = as_list(dig(result, "ShipmentData", "member"))
        return _paginate(shipments, dig(result, "NextToken"))

    def list_inbound_shipment_items(
        self,
        shipment_id: str | None = None,
        updated_after: datetime | None = None,
        updated_before: datetime | None = None,
    ) -> list:
        """Items of one shipment, or of every shipment updated in a time window."""
        if shipment_id:
            query = {"ShipmentId": shipment_id}
        elif updated_after and updated_before:
            _check_date(updated_after, "updated_after")
            _check_date(updated_before, "updated_before")
            query = {
                "LastUpdatedAfter": format_date(updated_after),
                "LastUpdatedBefore": format_date(updated_before),
            }
        else:
            raise ValidationError("Either shipment_id or both updated_after and updated_before are required")

        response = self._call("ListInboundShipmentItems", query)
        return as_list(dig(response, "ListInboundShipmentItemsResult", "ItemData", "member"))

    def get_transport_content(self, shipment_id: str) -> dict:
        if not shipment_id:
            return {}
        response = self._call("GetTransportContent", {"ShipmentId": shipment_id})
        return dig(response, "GetTransportContentResult", "TransportContent") or {}

    def list_inventory_supply(self, skus: Sequence[str]) -> list:
        """Detailed FBA inventory availability for up to 50 SKUs."""
        _check_size(skus, MAX_INVENTORY_SKUS, "SKUs")
        query = {
            "MarketplaceId": self.config.marketplace_id,
            "ResponseGroup": "Detailed",
        }
        query.update(_enumerate_param("SellerSkus.member", skus))

        response = self._call("ListInventorySupply", query)
        return as_list(dig(response, "ListInventorySupplyResult", "InventorySupplyList", "member"))

    # sellers and recommendations

    def list_marketplace_participations(self) -> dict:
        response = self._call("ListMarketplaceParticipations")
        return response.get("ListMarketplaceParticipationsResult") or response

    def list_recommendations(self, category: str | None = None) -> dict | None:
        """
        Active recommendations, optionally for one category (Inventory,
        Selection, Pricing, Fulfillment, ListingQuality, GlobalSelling or
        Advertising).
        """
        response = self._call("ListRecommendations", {
            "MarketplaceId": self.config.marketplace_id,
            "RecommendationCategory": category,
        })
        return response.get("ListRecommendationsResult")

    # feeds

    def debug_next_feed(self) -> None:
        """Makes the next submit_feed return its payload instead of sending it."""
        self._debug_next_feed = True

    def submit_feed(
        self,
        feed_type: str,
        content: Mapping | str,
        debug: bool = False,
        purge_and_replace: bool = False,
    ) -> Any:
        """
        Uploads a feed for processing.

        A mapping is wrapped into an AmazonEnvelope XML document, a string is
        sent untouched. With `debug` (or after debug_next_feed) the payload is
        returned and nothing is sent. A per-call `debug` leaves a pending
        debug_next_feed in place. Otherwise returns the FeedSubmissionInfo.

        Flat files with characters outside ISO-8859-1 raise ValidationError.
        """
        if isinstance(content, Mapping):
            content = build_envelope(self.config.seller_id, content)
        body = encode_feed(content, xml=content.lstrip().startswith("<"))

        if debug:
            logger.info("Debug mode: returning %s feed without submitting it", feed_type)
            return content
        if self._debug_next_feed:
            self._debug_next_feed = False
            logger.info("Debug next feed: returning %s feed without submitting it", feed_type)
            return content

        response = self._call("SubmitFeed", {
            "FeedType": feed_type,
            "PurgeAndReplace": "true" if purge_and_replace else "false",
            "Merchant": self.config.seller_id,
        }, body=body)
        return dig(response, "SubmitFeedResult", "FeedSubmissionInfo")

    def update_sku_price(
        self,
        standard_prices: Mapping[str, Any],
        sale_prices: Mapping[str, Mapping] | None = None,
        debug: bool = False,
    ) -> Any:
        """
        Submits a pricing feed.

        `standard_prices` maps SKU to price. `sale_prices` optionally maps SKU
        to {"SalePrice": ..., "StartDate": datetime, "EndDate": datetime}.
        Prices must be valid XSD decimals.
        """
        if not standard_prices:
            raise ValidationError("No prices to update")
        feed = build_price_messages(standard_prices, sale_prices)
        return self.submit_feed("_POST_PRODUCT_PRICING_DATA_", feed, debug=debug)

    def create_mc_order(
        self,
        order_items: Sequence,
        extra_headers: Sequence[str] = (),
        debug: bool = False,
    ) -> Any:
        """
        Creates multi-channel fulfillment orders from a flat file.

        Each item supplies the columns of FULFILLMENT_ORDER_HEADER in order,
        followed by any `extra_headers` columns.
        """
        if not order_items:
            raise ValidationError("Wrong multi-channel order creation parameters")
        flat_file = build_flat_file([*FULFILLMENT_ORDER_HEADER, *extra_headers], order_items)
        return self.submit_feed("_POST_FLAT_FILE_FULFILLMENT_ORDER_REQUEST_DATA_", flat_file, debug=debug)

    def mc_order_shipping_confirm(self, shipping_data: Sequence, debug: bool = False) -> Any:
        if not shipping_data:
            raise ValidationError("Data of order fulfillment is empty")
        flat_file = build_flat_file(SHIPPING_CONFIRMATION_HEADER, shipping_data)
        return self.submit_feed("_POST_FLAT_FILE_FULFILLMENT_DATA_", flat_file, debug=debug)

    def get_feed_submission_result(self, feed_submission_id: str) -> Any:
        response = self._call("GetFeedSubmissionResult", {"FeedSubmissionId": feed_submission_id})
        report = dig(response, "Message", "ProcessingReport")
        return report if report is not None else response

    # reports

    def request_report(
        self,
        report_type: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> str:
        """Requests a report and returns its ReportRequestId."""
        _check_date(start_date, "start_date")
        _check_date(end_date, "end_date")

        query = {
            "MarketplaceIdList.Id.1": self.config.marketplace_id,
            "ReportType": report_type,
        }
        if start_date is not None:
            query["StartDate"] = format_date(start_date)
        if end_date is not None:
            query["EndDate"] = format_date(end_date)

        response = self._call("RequestReport", query)
        request_id = dig(response, "RequestReportResult", "ReportRequestInfo", "ReportRequestId")
        if request_id is None:
            raise RequestError("Error trying to request report")
        logger.info("Requested report %s (request id %s)", report_type, request_id)
        return request_id

    def get_report_request_status(self, request_id: str) -> dict | None:
        response = self._call("GetReportRequestList", {"ReportRequestIdList.Id.1": request_id})
        return dig(response, "GetReportRequestListResult", "ReportRequestInfo")

    def get_report(self, request_id: str) -> list | Any | None:
        """
        Returns the content of a requested report once it is ready.

        [] when the report finished without data, the parsed rows when it is
        done, and None while it is still processing or after it failed.
        Polling cadence is up to the caller.
        """
        status = self.get_report_request_status(request_id)
        processing_status = dig(status, "ReportProcessingStatus")

        if processing_status == REPORT_DONE_NO_DATA:
            return []
        if processing_status != REPORT_DONE:
            logger.debug("Report request %s not ready: %s", request_id, processing_status)
            return None

        report_id = dig(status, "GeneratedReportId")
        if report_id is None:
            raise RequestError(f"Report request {request_id} is done but has no GeneratedReportId")

        result = self.execute("GetReport", {"ReportId": report_id})
        if isinstance(result, str):
            return parse_tab_delimited(result)
        return result

    def get_report_list(self, report_types: Iterable[str] = ()) -> dict:
        """Reports created in the previous 90 days, optionally filtered by type."""
        response = self._call("GetReportList", _enumerate_param("ReportTypeList.Type", report_types))
        return response.get("GetReportListResult") or {}


def _flatten_product(product: dict) -> dict:
    item_attributes = dig(product, "AttributeSets", "ItemAttributes", default={})
    if isinstance(item_attributes, list):
        item_attributes = item_attributes[0]

    flat = {}
    asin = dig(product, "Identifiers", "MarketplaceASIN", "ASIN")
    if asin is not None:
        flat["ASIN"] = asin

    for key, value in item_attributes.items():
        if isinstance(value, str):
            flat[key] = value

    if "Feature" in item_attributes:
        flat["Feature"] = item_attributes["Feature"]

    dimensions = item_attributes.get("PackageDimensions")
    if isinstance(dimensions, dict):
        flat["PackageDimensions"] = {
            name: float(text_of(value))
            for name, value in dimensions.items()
            if name != ATTRIBUTES_KEY and text_of(value) is not None
        }

    if "ListPrice" in item_attributes:
        flat["ListPrice"] = item_attributes["ListPrice"]

    image = dig(item_attributes, "SmallImage", "URL")
    if image:
        flat["medium_image"] = image
        flat["small_image"] = image.replace("._SL75_", "._SL50_")
        flat["large_image"] = image.replace("._SL75_", "")

    parent_asin = dig(product, "Relationships", "VariationParent", "Identifiers", "MarketplaceASIN", "ASIN")
    if parent_asin is not None:
        flat["Parentage"] = "child"
        flat["Relationships"] = parent_asin
    if dig(product, "Relationships", "VariationChild") is not None:
        flat["Parentage"] = "parent"

    sales_rank = dig(product, "SalesRankings", "SalesRank")
    if sales_rank is not None:
        flat["SalesRank"] = sales_rank
    return flat
