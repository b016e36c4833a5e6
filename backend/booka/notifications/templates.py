"""Email templates for booking and account notifications."""

from dataclasses import dataclass
from html import escape

TEMPLATES = {
    "booking_confirmation": {
        "subject": "Booking received: {room_name}",
        "body": (
            "Hi {guest_name},\n\n"
            "Thanks for booking with Booka. Your reservation is in and awaiting confirmation.\n\n"
            "Booking details:\n"
            "- Booking ID: {booking_id}\n"
            "- Room: {room_name}\n"
            "- Location: {location}\n"
            "- Check-in: {check_in}\n"
            "- Check-out: {check_out}\n"
            "- Nights: {nights}\n"
            "- Total price: ${total_price}\n\n"
            "See you soon,\nThe Booka team"
        ),
    },
    "booking_cancellation": {
        "subject": "Booking cancelled: {room_name}",
        "body": (
            "Hi {guest_name},\n\n"
            "Your booking {booking_id} at {room_name} ({check_in} to {check_out}) has been cancelled.\n\n"
            "Reason: {reason}\n\n"
            "We hope to host you another time,\nThe Booka team"
        ),
    },
    "welcome": {
        "subject": "Welcome to Booka, {guest_name}!",
        "body": (
            "Hi {guest_name},\n\n"
            "Your Booka account is ready. Browse rooms and book your next stay any time.\n\n"
            "Happy travels,\nThe Booka team"
        ),
    },
}


@dataclass(frozen=True)
class EmailMessage:
    """A rendered email ready for a transport."""

    to: str
    subject: str
    text: str
    html: str
    template: str


def _to_html(text: str) -> str:
    paragraphs = (escape(block).replace("\n", "<br>") for block in text.split("\n\n"))
    return "<html><body>" + "".join(f"<p>{p}</p>" for p in paragraphs) + "</body></html>"


def render(template: str, to: str, **template_vars: object) -> EmailMessage:
    """Render ``template`` for recipient ``to``.

    Raises:
        KeyError: If the template does not exist or a variable is missing.
    """
    tmpl = TEMPLATES[template]
    text = tmpl["body"].format(**template_vars)
    return EmailMessage(
        to=to,
        subject=tmpl["subject"].format(**template_vars),
        text=text,
        html=_to_html(text),
        template=template,
    )
