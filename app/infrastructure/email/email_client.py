"""
Cliente de correo (SMTP) para el código de verificación y la bienvenida.

Se instancia una vez en el contenedor de la app. Si SMTP no está configurado
el cliente queda deshabilitado: los envíos devuelven False y se registra un warning.
"""
import logging
import smtplib
from email.message import EmailMessage

from app.core.config import Settings

_log = logging.getLogger("notes.email")


class EmailClient:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.is_configured = settings.smtp_configured
        if not self.is_configured:
            _log.warning("SMTP no configurado (SMTP_HOST/SMTP_USER/SMTP_PASS); emails deshabilitados")

    def send_email(self, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> None:
        s = self._settings
        if not self.is_configured:
            raise RuntimeError("SMTP no configurado. Define SMTP_HOST/SMTP_USER/SMTP_PASS en .env")

        msg = EmailMessage()
        msg["From"] = f"{s.smtp_from_name} <{s.smtp_from_email or s.smtp_user}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        if text_body:
            msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")

        # Conexión STARTTLS por defecto (587); SSL directo si smtp_use_tls=False (465)
        if s.smtp_use_tls:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
                server.starttls()
                server.login(s.smtp_user, s.smtp_pass)
                server.send_message(msg)
        else:
            with smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
                server.login(s.smtp_user, s.smtp_pass)
                server.send_message(msg)

    def _deliver(self, kind: str, to_email: str, subject: str, html: str, text: str) -> bool:
        if not self.is_configured:
            _log.warning("Email %s no enviado a %s: SMTP no configurado", kind, to_email)
            return False
        try:
            self.send_email(to_email, subject, html, text)
        except (smtplib.SMTPException, OSError) as e:
            _log.error("Fallo al enviar email %s a %s: %s", kind, to_email, e)
            return False
        _log.info("Email %s enviado a %s", kind, to_email)
        return True

    def send_otp_email(self, to_email: str, full_name: str, code: str, expires_in_minutes: int) -> bool:
        """Envía el código OTP. Devuelve True si el transporte aceptó el mensaje."""
        app = self._settings.app_name
        subject = f"Your {app} verification code"
        html = f"""
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background:#f7f7f8;padding:24px 0;font-family:system-ui,-apple-system,Segoe UI,Roboto,sans-serif;color:#111">
      <tr>
        <td align="center">
          <table role="presentation" width="560" cellpadding="0" cellspacing="0" style="background:#fff;border-radius:12px;border:1px solid #e6e6e7;padding:24px">
            <tr><td>
              <h2 style="margin:0 0 8px;font-size:20px;color:#111">Hi {full_name},</h2>
              <p style="margin:0 0 16px;color:#444">Use this code to verify your email address:</p>
              <div style="display:inline-block;font-size:28px;letter-spacing:4px;font-weight:700;background:#111;color:#fff;padding:12px 16px;border-radius:8px">{code}</div>
              <p style="margin:16px 0 0;color:#555">This code expires in <b>{expires_in_minutes} minutes</b>. If you did not sign up, you can ignore this message.</p>
              <p style="margin:12px 0 0;color:#888">The {app} team</p>
            </td></tr>
          </table>
        </td>
      </tr>
    </table>
    """
        text = f"Hi {full_name}, your {app} verification code is {code}. It expires in {expires_in_minutes} minutes."
        return self._deliver("otp", to_email, subject, html, text)

    def send_welcome_email(self, to_email: str, full_name: str) -> bool:
        app = self._settings.app_name
        subject = f"Welcome to {app}!"
        html = f"""
    <p>Hi {full_name},</p>
    <p>Your email has been verified. You can now create, tag, pin and search your notes.</p>
    <p>The {app} team</p>
    """
        text = f"Hi {full_name}, your email has been verified. Welcome to {app}!"
        return self._deliver("welcome", to_email, subject, html, text)
