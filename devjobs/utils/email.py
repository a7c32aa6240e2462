import html
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from devjobs.config import SMTP_EMAIL, SMTP_PASSWORD, SMTP_HOST, SMTP_PORT, FRONTEND_URL, APP_NAME


def smtp_configured() -> bool:
    return bool(SMTP_EMAIL and SMTP_PASSWORD)


def send_email(to_email: str, subject: str, html_body: str):
    msg = MIMEMultipart()
    msg["From"] = SMTP_EMAIL
    msg["To"] = to_email
    msg["Subject"] = subject

    msg.attach(MIMEText(html_body, "html"))

    with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT) as server:
        server.login(SMTP_EMAIL, SMTP_PASSWORD)
        server.send_message(msg)


def render_email(greeting: str, lines: list[str], action_text: str = None, action_path: str = None) -> str:
    """Lines are plain text; user-supplied values such as titles and names are escaped here"""
    greeting = html.escape(greeting)
    body = "".join(f"<p>{html.escape(line)}</p>" for line in lines)
    button = ""
    if action_text and action_path:
        action_text = html.escape(action_text)
        href = html.escape(f"{FRONTEND_URL}{action_path}", quote=True)
        button = (
            f'<p><a href="{href}" '
            f'style="background:#2563eb;color:#fff;padding:10px 18px;border-radius:6px;text-decoration:none">'
            f"{action_text}</a></p>"
        )
    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #111;">
        <h2>{greeting}</h2>
        {body}
        {button}
        <p style="color:#666">The {APP_NAME} team</p>
      </body>
    </html>
    """
