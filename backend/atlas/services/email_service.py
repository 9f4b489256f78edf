"""
Service d'envoi d'emails SMTP.
Utilisé pour l'envoi du QR code de badge aux participants avant l'événement.
"""

import html
import logging
import smtplib
from datetime import date
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from atlas.config import settings

logger = logging.getLogger(__name__)


def send_badge_qr_email(
    to_email: str,
    attendee_name: str,
    registration_code: str,
    event_name: str,
    event_date: date,
    qr_image_bytes: bytes,
) -> None:
    """
    Envoie un email HTML contenant le QR code du badge d'un participant.
    Le QR code est intégré en ligne dans le corps de l'email (Content-ID).
    Les champs interpolés sont échappés. Lève une exception en cas d'échec SMTP.
    """
    msg = MIMEMultipart("related")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = f"{event_name}: your badge QR code ({registration_code})"

    name = html.escape(attendee_name)
    event_label = html.escape(event_name)
    code = html.escape(registration_code)

    # Corps HTML avec QR code intégré via Content-ID
    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
        <h2 style="color: #1a73e8;">{event_label}</h2>
        <p>Hello {name},</p>
        <p>
          Your registration <strong>{code}</strong> is confirmed for
          <strong>{event_label}</strong> starting on <strong>{event_date.strftime('%d/%m/%Y')}</strong>.
        </p>
        <p>
          Show this QR code at registration desks, meal counters and kit stations.
          It can be displayed on a screen or printed.
        </p>
        <div style="text-align: center; margin: 24px 0;">
          <img src="cid:qrcode" alt="Badge QR code" style="width: 220px; height: 220px;" />
        </div>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          This message was sent automatically by Onsite Atlas. Please do not reply.
        </p>
      </body>
    </html>
    """

    html_part = MIMEMultipart("alternative")
    html_part.attach(MIMEText(html_content, "html", "utf-8"))
    msg.attach(html_part)

    # QR code en pièce jointe inline (référencé par cid:qrcode dans le HTML)
    qr_attachment = MIMEImage(qr_image_bytes, name="qrcode.png")
    qr_attachment.add_header("Content-ID", "<qrcode>")
    qr_attachment.add_header("Content-Disposition", "inline", filename="qrcode.png")
    msg.attach(qr_attachment)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("QR code de badge envoyé à %s (%s)", to_email, registration_code)
