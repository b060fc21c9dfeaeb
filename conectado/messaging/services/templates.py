"""System message bodies sent on behalf of organizations."""

from datetime import datetime

from conectado.messaging.models.message import MessageType
from conectado.messaging.schemas.message import SendMessageRequest


def application_approved(recipient_id: int, opportunity_title: str) -> SendMessageRequest:
    return SendMessageRequest(
        recipient_id=recipient_id,
        content=(
            f"¡Felicidades! Tu postulación para '{opportunity_title}' ha sido aprobada. "
            "Te contactaremos pronto con más detalles."
        ),
        message_type=MessageType.SYSTEM,
    )


def application_rejected(
    recipient_id: int, opportunity_title: str, reason: str | None = None
) -> SendMessageRequest:
    content = (
        f"Gracias por tu interés en '{opportunity_title}'. "
        "Desafortunadamente, no has sido seleccionado para esta oportunidad."
    )
    if reason:
        content += f" Motivo: {reason}"
    content += " ¡No te desanimes! Hay muchas otras oportunidades disponibles."
    return SendMessageRequest(
        recipient_id=recipient_id,
        content=content,
        message_type=MessageType.APPLICATION_UPDATE,
    )


def new_opportunity_announcement(
    recipient_id: int, organization_name: str, opportunity_title: str
) -> SendMessageRequest:
    return SendMessageRequest(
        recipient_id=recipient_id,
        content=(
            f"¡Nueva oportunidad disponible! {organization_name} ha publicado "
            f"'{opportunity_title}'. ¡Postúlate ahora!"
        ),
        message_type=MessageType.SYSTEM,
    )


def event_reminder(
    recipient_id: int, opportunity_title: str, event_date: datetime
) -> SendMessageRequest:
    return SendMessageRequest(
        recipient_id=recipient_id,
        content=(
            f"Recordatorio: Tu evento '{opportunity_title}' será mañana "
            f"({event_date.strftime('%d/%m/%Y %H:%M')}). ¡No olvides prepararte!"
        ),
        message_type=MessageType.SYSTEM,
    )
