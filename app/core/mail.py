import smtplib
from email.message import EmailMessage
from pathlib import Path
from string import Template
from typing import Any, Mapping, Protocol, Sequence

# Outgoing mail template names
ORDER_MAIL_TMPL = "checkout"
MESSAGE_MAIL_TMPL = "message"


class Mailer(Protocol):
    def send(self, headers: Mapping[str, Sequence[str]], template: str, data: Mapping[str, Any], to: Sequence[str]) -> None: ...


class SmtpMailer:
    """Renders `<template>.mail.html` with `string.Template` and sends it over SMTP."""

    def __init__(self, host: str, port: int, username: str = "", password: str = "", template_dir: str = "templates"):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.template_dir = Path(template_dir)

    def render(self, template: str, data: Mapping[str, Any]) -> str:
        source = (self.template_dir / f"{template}.mail.html").read_text(encoding="utf-8")
        return Template(source).safe_substitute({k: "" if v is None else v for k, v in data.items()})

    def send(self, headers: Mapping[str, Sequence[str]], template: str, data: Mapping[str, Any], to: Sequence[str]) -> None:
        msg = EmailMessage()
        for key, values in headers.items():
            msg[key] = ", ".join(values)
        msg.set_content(self.render(template, data), subtype="html")

        with smtplib.SMTP(self.host, self.port) as smtp:
            smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg, to_addrs=list(to))
