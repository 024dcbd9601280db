"""
Data model for a single point-of-sale order line.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from utils.parsing import parse_business_date, parse_number

# Source column -> model field
COLUMN_MAP: dict[str, str] = {
    "CUSTOMER_ID": "customer_id",
    "CUSTOMER_NAME": "customer_name",
    "ORDER_ID": "order_id",
    "ORDER_NUMBER": "order_number",
    "BUSINESS_DATE": "business_date",
    "ITEM_NAME": "item_name",
    "ITEM_UNIT_AMOUNT": "item_unit_amount",
    "ITEM_AMOUNT_TOTAL": "item_amount_total",
    "ITEM_QUANTITY": "item_quantity",
    "TRANSACTION_ID": "transaction_id",
}

# Columns whose absence from the header is kept as None instead of ""
OPTIONAL_COLUMNS = {"CUSTOMER_ID", "CUSTOMER_NAME"}


class OrderLineRecord(BaseModel):
    """One row of the order table. All values are kept as sourced text."""

    model_config = ConfigDict(frozen=True)

    customer_id: str | None = None
    customer_name: str | None = None
    order_id: str = ""
    order_number: str = ""
    business_date: str = ""
    item_name: str = ""
    item_unit_amount: str = ""
    item_amount_total: str = ""
    item_quantity: str = ""
    transaction_id: str = ""

    @classmethod
    def from_row(cls, row: dict[str, str]) -> "OrderLineRecord":
        """Build a record from a header-keyed row, ignoring unknown columns."""
        values: dict[str, str | None] = {}
        for column, field_name in COLUMN_MAP.items():
            if column in row:
                values[field_name] = row[column]
            elif column not in OPTIONAL_COLUMNS:
                values[field_name] = ""
        return cls(**values)

    @property
    def order_key(self) -> str:
        """Order identity: ORDER_ID, or ORDER_NUMBER when ORDER_ID is blank."""
        return self.order_id.strip() or self.order_number.strip()

    @property
    def spend(self) -> float:
        """Line total, falling back to the unit amount, then 0."""
        amount = parse_number(self.item_amount_total)
        if amount is None:
            amount = parse_number(self.item_unit_amount)
        return amount if amount is not None else 0.0

    @property
    def quantity(self) -> float:
        """Line quantity; missing, unreadable or zero quantities count as 1."""
        qty = parse_number(self.item_quantity)
        return qty if qty else 1.0

    @property
    def parsed_date(self) -> datetime | None:
        return parse_business_date(self.business_date)
