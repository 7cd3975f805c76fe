"""Errors raised by the pricing engine."""


class InvalidInput(ValueError):
    """A shipment attribute is missing, non-numeric, non-positive or unrecognized."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
