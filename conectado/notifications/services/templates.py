"""Ready-made notifications for events raised by other parts of the platform."""

from datetime import datetime

from conectado.notifications.models.notification import NotificationPriority, NotificationType
from conectado.notifications.schemas.notification import CreateNotificationRequest


def application_submitted(
    organization_user_id: int,
    volunteer_id: int,
    volunteer_name: str,
    opportunity_title: str,
    opportunity_id: int,
) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        recipient_id=organization_user_id,
        sender_id=volunteer_id,
        title="Nueva postulación recibida",
        message=f"{volunteer_name} se ha postulado a {opportunity_title}",
        type=NotificationType.APPLICATION_SUBMITTED,
        action_url=f"/Events/Applicants/{opportunity_id}",
        priority=NotificationPriority.NORMAL,
    )


def application_approved(
    volunteer_id: int, organization_user_id: int, opportunity_title: str, opportunity_id: int
) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        recipient_id=volunteer_id,
        sender_id=organization_user_id,
        title="¡Postulación aprobada!",
        message=f"Tu postulación a {opportunity_title} ha sido aprobada",
        type=NotificationType.APPLICATION_APPROVED,
        action_url=f"/Events/Details/{opportunity_id}",
        priority=NotificationPriority.HIGH,
    )


def application_rejected(
    volunteer_id: int,
    organization_user_id: int,
    opportunity_title: str,
    opportunity_id: int,
    reason: str | None = None,
) -> CreateNotificationRequest:
    message = f"Tu postulación a {opportunity_title} no ha sido seleccionada"
    if reason:
        message += f". Motivo: {reason}"
    return CreateNotificationRequest(
        recipient_id=volunteer_id,
        sender_id=organization_user_id,
        title="Postulación no seleccionada",
        message=message,
        type=NotificationType.APPLICATION_REJECTED,
        action_url=f"/Events/Details/{opportunity_id}",
        priority=NotificationPriority.NORMAL,
    )


def opportunity_created(
    volunteer_id: int, organization_name: str, opportunity_title: str, opportunity_id: int
) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        recipient_id=volunteer_id,
        title="Nueva oportunidad disponible",
        message=f"{organization_name} ha publicado una nueva oportunidad: {opportunity_title}",
        type=NotificationType.OPPORTUNITY_CREATED,
        action_url=f"/Events/Details/{opportunity_id}",
        priority=NotificationPriority.NORMAL,
    )


def welcome(user_id: int, user_name: str) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        recipient_id=user_id,
        title="¡Bienvenido a Voluntariado Conectado RD!",
        message=(
            f"Hola {user_name}, gracias por unirte a nuestra plataforma. "
            "¡Comienza a explorar oportunidades de voluntariado!"
        ),
        type=NotificationType.WELCOME,
        action_url="/Dashboard/Index",
        priority=NotificationPriority.NORMAL,
    )


def reminder_upcoming(
    user_id: int, opportunity_title: str, opportunity_date: datetime, opportunity_id: int
) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        recipient_id=user_id,
        title="Recordatorio de evento",
        message=(
            f"Tu evento '{opportunity_title}' será mañana "
            f"({opportunity_date.strftime('%d/%m/%Y %H:%M')})"
        ),
        type=NotificationType.REMINDER_UPCOMING,
        action_url=f"/Events/Details/{opportunity_id}",
        priority=NotificationPriority.HIGH,
    )
