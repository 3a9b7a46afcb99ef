import csv
import io
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

import xmltodict

from mwsclient.clients.mws.errors import ValidationError

FEED_ENCODING = "iso-8859-1"
DOCUMENT_VERSION = "1.01"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"

FULFILLMENT_ORDER_HEADER = [
    "MerchantFulfillmentOrderID",
    "DisplayableOrderID",
    "DisplayableOrderDate",
    "MerchantSKU",
    "Quantity",
    "MerchantFulfillmentOrderItemID",
    "DisplayableOrderComment",
    "DeliverySLA",
    "AddressName",
    "AddressFieldOne",
    "AddressCity",
    "AddressCountryCode",
    "AddressStateOrRegion",
    "AddressPostalCode",
]

SHIPPING_CONFIRMATION_HEADER = [
    "order-id",
    "order-item-id",
    "quantity",
    "ship-date",
    "carrier-code",
    "carrier-name",
    "tracking-number",
    "ship-method",
]


def format_date(value: datetime) -> str:
    """MWS timestamp in UTC. Naive datetimes are taken to be UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(DATE_FORMAT)


def build_envelope(merchant_id: str, content: Mapping) -> str:
    """
    Renders `content` inside an <AmazonEnvelope> with the standard header.

    `content` uses xmltodict conventions: "@name" keys are attributes, "#text"
    is character data and lists become repeated elements.
    """
    envelope = {
        "Header": {
            "DocumentVersion": DOCUMENT_VERSION,
            "MerchantIdentifier": merchant_id,
        },
        **content,
    }
    return xmltodict.unparse({"AmazonEnvelope": envelope}, encoding=FEED_ENCODING)


def _price(amount) -> dict:
    return {"@currency": "DEFAULT", "#text": str(amount)}


def build_price_messages(standard_prices: Mapping, sale_prices: Mapping | None = None) -> dict:
    """
    Builds the body of a _POST_PRODUCT_PRICING_DATA_ feed.

    `standard_prices` maps SKU to price. `sale_prices` optionally maps SKU to
    a mapping with SalePrice, StartDate and EndDate (datetimes).
    """
    sale_prices = sale_prices or {}
    messages = []
    for message_id, (sku, price) in enumerate(standard_prices.items(), start=1):
        body = {
            "SKU": sku,
            "StandardPrice": _price(price),
        }
        sale = sale_prices.get(sku)
        if isinstance(sale, Mapping):
            body["Sale"] = {
                "StartDate": format_date(sale["StartDate"]),
                "EndDate": format_date(sale["EndDate"]),
                "SalePrice": _price(sale["SalePrice"]),
            }
        messages.append({"MessageID": message_id, "Price": body})

    return {"MessageType": "Price", "Message": messages}


def build_flat_file(header: Iterable[str], rows: Iterable) -> str:
    """
    Renders a tab-delimited flat file: the header line followed by one line per row.

    Rows may be sequences or mappings; mapping values are written in
    insertion order and their keys are ignored.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter="\t", lineterminator="\n")
    writer.writerow(list(header))
    for row in rows:
        if isinstance(row, Mapping):
            row = list(row.values())
        writer.writerow(row)
    return buffer.getvalue()


def encode_feed(content: str, xml: bool = True) -> bytes:
    """
    Encodes a feed body as ISO-8859-1.

    XML feeds escape characters outside the charset as character references.
    Flat files have no escape syntax, so such characters raise ValidationError.
    """
    if xml:
        return content.encode(FEED_ENCODING, errors="xmlcharrefreplace")
    try:
        return content.encode(FEED_ENCODING)
    except UnicodeEncodeError as e:
        raise ValidationError(
            f"Flat file contains characters outside {FEED_ENCODING}: {e.object[e.start:e.end]!r}"
        ) from e
