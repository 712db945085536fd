from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PaymentRequest:
    order_id: int
    amount: str
    currency: str
    first_name: str
    last_name: str
    address: str
    phone: str
    email: str
    confirm_url: str = ""
    return_url: str = ""
    details: str = "Order payment by Credit Card."

    @classmethod
    def billing_name(cls, full_name: str) -> tuple[str, str]:
        """Splits "Last First Middle" into ("First Middle", "Last")."""
        parts = full_name.split(" ")
        return " ".join(parts[1:]), parts[0]


class PaymentGateway(Protocol):
    def encrypt(self, request: PaymentRequest) -> tuple[str, str]:
        """Returns the encrypted payload and its envelope key."""
        ...


class NullPaymentGateway:
    def encrypt(self, request: PaymentRequest) -> tuple[str, str]:
        return "", ""
