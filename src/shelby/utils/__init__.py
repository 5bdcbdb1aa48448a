"""Utility functions for shelby."""

from shelby.utils.date_parser import parse_date
from shelby.utils.amount_parser import parse_amount, to_amount
from shelby.utils.pagination import Order, Page, Pagination

__all__ = ["parse_date", "parse_amount", "to_amount", "Order", "Page", "Pagination"]
