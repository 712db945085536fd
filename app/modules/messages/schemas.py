from pydantic import BaseModel


class Message(BaseModel):
    """Contact form message sent to the shop."""
    name: str = ""
    email: str = ""
    phone: str = ""
    subject: str = ""
    message: str = ""


class MessageID(BaseModel):
    id: int
