from html import escape
from typing import Sequence

from sqlalchemy import insert

from app.core.errors import InternalError, InvalidArgumentError
from app.core.mail import MESSAGE_MAIL_TMPL, Mailer
from app.core.transaction import RequestTx
from app.core.validation import check_required
from app.modules.messages import models
from app.modules.messages.schemas import Message

ERR_MAILER = "Mailer error"


def new_message(rt: RequestTx, sm: Message) -> int:
    """Stores a contact form message and returns its id."""
    try:
        check_required({"name": sm.name, "email": sm.email, "message": sm.message})
    except InvalidArgumentError as exc:
        rt.log.warning("new_message: %s", exc.message)
        raise

    stmt = insert(models.Message).values(**sm.model_dump()).returning(models.Message.id)
    with rt.guard("new_message"):
        return rt.session.execute(stmt).scalar_one()


def send_mail(rt: RequestTx, mailer: Mailer, mid: int, sm: Message, sender: str, to: Sequence[str], shop_name: str) -> None:
    subject = f"{shop_name}: message #{mid}: {sm.subject}"
    headers = {"From": [sender], "Subject": [subject], "To": list(to)}
    data = {"id": mid, **{k: escape(v) for k, v in sm.model_dump().items()}}
    log = rt.log.with_fields(headers=headers)
    try:
        mailer.send(headers, MESSAGE_MAIL_TMPL, data, to)
    except Exception as exc:
        log.exception("send_mail")
        raise InternalError(ERR_MAILER) from exc
    log.debug("send_mail")
