"""Out-of-band delivery for registration codes, password reset codes and welcome mail (Mailgun, SendGrid, or dev console)."""
import html
import logging

import httpx

from app.config import get_settings

log = logging.getLogger("uvicorn.error")

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"


def mail_provider_configured() -> bool:
    s = get_settings()
    return bool((s.mailgun_api_key and s.mailgun_domain) or s.sendgrid_api_key)


def send_email(to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
    """Send email via Mailgun (preferred), SendGrid, or the dev console. Returns True if handed off; never raises."""
    settings = get_settings()
    if settings.mailgun_api_key and settings.mailgun_domain:
        return _send_email_mailgun(to_email, subject, html_content, text_content=text_content, settings=settings)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(to_email, subject, html_content, text_content=text_content, settings=settings)
    if settings.otp_console_delivery:
        return _send_email_console(to_email, subject, text_content or html_content)
    log.warning(
        "[Email] NOT SENT: to=%s subject=%s. Set MAILGUN_API_KEY and MAILGUN_DOMAIN (or SENDGRID_API_KEY) in .env.",
        to_email, subject,
    )
    return False


def _send_email_console(to_email: str, subject: str, body: str) -> bool:
    print("\n[Email] DEV MODE - not sent, printed instead", flush=True)
    print(f"   To: {to_email}", flush=True)
    print(f"   Subject: {subject}", flush=True)
    print(f"   {body}\n", flush=True)
    return True


def _send_email_mailgun(to_email: str, subject: str, html_content: str, text_content: str | None = None, settings=None) -> bool:
    if settings is None:
        settings = get_settings()
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
    domain = (settings.mailgun_domain or "").strip().lower()
    from_addr = (settings.mailgun_from_email or "").strip()
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        # Mailgun drops mail whose sender is outside the sending domain
        from_addr = f"noreply@{domain}"
    data = {
        "from": f"{settings.mailgun_from_name} <{from_addr}>",
        "to": to_email,
        "subject": subject,
        "text": text_content or "",
        "html": html_content or "",
    }
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
            if 200 <= r.status_code < 300:
                log.info("[Mailgun] sent to=%s status=%s", to_email, r.status_code)
                return True
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                log.info("[Mailgun] 401 with US endpoint, retrying with EU endpoint")
                r = client.post(f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
                if 200 <= r.status_code < 300:
                    log.info("[Mailgun] sent (EU) to=%s", to_email)
                    return True
            log.warning("[Mailgun] failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
            return False
    except httpx.HTTPError as e:
        log.warning("[Mailgun] %s sending to %s: %s", type(e).__name__, to_email, e)
        return False


def _send_email_sendgrid(to_email: str, subject: str, html_content: str, text_content: str | None = None, settings=None) -> bool:
    if settings is None:
        settings = get_settings()
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail

    message = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content or "",
    )
    try:
        SendGridAPIClient(settings.sendgrid_api_key).send(message)
        return True
    except Exception as e:
        log.warning("[SendGrid] failed to send to %s: %s", to_email, e)
        return False


def send_registration_otp_email(to_email: str, code: str, name: str | None = None) -> bool:
    """Send the registration one-time code."""
    s = get_settings()
    who = (name or "").strip() or "there"
    subject = f"[{s.app_name}] Your verification code"
    text_content = (
        f"Hi {who}, your {s.app_name} verification code is: {code}. "
        f"It expires in {s.otp_ttl_minutes} minutes."
    )
    html_content = f"""
    <p>Hi {html.escape(who)},</p>
    <p>Thank you for registering. Please verify your email address to complete your registration.</p>
    <p>Your verification code is: <strong style="font-size:1.4em;letter-spacing:0.2em;">{code}</strong></p>
    <p>This code expires in {s.otp_ttl_minutes} minutes. If you did not sign up, you can ignore this email.</p>
    """
    return send_email(to_email, subject, html_content, text_content=text_content)


def send_welcome_email(to_email: str, name: str | None, kind: str) -> bool:
    s = get_settings()
    who = (name or "").strip() or "there"
    what = "post jobs and courses" if kind == "organization" else "browse and apply for jobs and courses"
    subject = f"[{s.app_name}] Welcome - your account is ready"
    text = f"Hi {who}, welcome to {s.app_name}. Your account is verified and you can now sign in to {what}."
    html_body = f"<p>Hi {html.escape(who)},</p><p>Welcome to {s.app_name}. Your account is verified and you can now sign in to {what}.</p>"
    return send_email(to_email, subject, html_body, text_content=text)


def send_password_reset_email(to_email: str, code: str, name: str | None = None) -> bool:
    s = get_settings()
    who = (name or "").strip() or "there"
    subject = f"[{s.app_name}] Password reset code"
    text_content = (
        f"Hi {who}, your {s.app_name} password reset code is: {code}. "
        f"It expires in {s.otp_ttl_minutes} minutes. If you did not ask to reset your password, ignore this email."
    )
    html_content = f"""
    <p>Hi {html.escape(who)},</p>
    <p>You asked to reset your password. Your one-time code is:
    <strong style="font-size:1.4em;letter-spacing:0.2em;">{code}</strong></p>
    <p>This code expires in {s.otp_ttl_minutes} minutes. If you did not ask to reset your password, you can ignore this email.</p>
    """
    return send_email(to_email, subject, html_content, text_content=text_content)
