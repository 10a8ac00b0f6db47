from typing import List


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    status_code = 400


class InvalidReference(ShopError):
    """Bill line items point at catalog items that do not exist."""

    status_code = 400

    def __init__(self, item_ids: List[str]):
        super().__init__(f"Items not found: {', '.join(item_ids)}")
        self.item_ids = item_ids


class NotFound(ShopError):
    status_code = 404


class Conflict(ShopError):
    status_code = 409
