# domain_agent/notifications/templates.py
from dataclasses import dataclass
from html import escape

BRAND = "Domain Buying Agent"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #333;">
    <div style="max-width: 600px; margin: 0 auto;">
      <div style="background: #4f46e5; color: #fff; padding: 24px; text-align: center;">
        <h1>{title}</h1>
        <p>{BRAND}</p>
      </div>
      <div style="padding: 24px;">
        {body}
        <p>Best regards,<br>The {BRAND} Team</p>
      </div>
      <div style="font-size: 12px; color: #888; text-align: center;">
        <p>This is an automated email. Please do not reply to this message.</p>
      </div>
    </div>
  </body>
</html>"""


def password_reset_email(to: str, user_name: str, reset_url: str) -> EmailMessage:
    name = escape(user_name)
    url = escape(reset_url, quote=True)
    body = f"""
        <h2>Hi {name}!</h2>
        <p>You requested a password reset for your {BRAND} account. Click the link below to create a new password:</p>
        <p><a href="{url}">Reset Password</a></p>
        <p>This link will expire in 1 hour. If you didn't request this, you can ignore this email.</p>
        <p>If the button doesn't work, copy and paste this link into your browser:<br>{url}</p>
    """
    text = (
        f"Hi {user_name}!\n\n"
        f"Reset your {BRAND} password here (expires in 1 hour):\n{reset_url}\n\n"
        "If you didn't request this, you can ignore this email."
    )
    return EmailMessage(
        to=to,
        subject=f"Password Reset Request - {BRAND}",
        html=_layout("Password Reset Request", body),
        text=text,
    )


def welcome_email(to: str, user_name: str) -> EmailMessage:
    name = escape(user_name)
    body = f"""
        <h2>Hi {name}!</h2>
        <p>Welcome to {BRAND}! Here is what you can do:</p>
        <ul>
          <li>Search for available domains across extensions</li>
          <li>Get AI domain recommendations for your business</li>
          <li>Buy domains securely with integrated payments</li>
          <li>Manage DNS and renewals from your dashboard</li>
        </ul>
        <p>Happy domain hunting!</p>
    """
    return EmailMessage(
        to=to,
        subject=f"Welcome to {BRAND}!",
        html=_layout(f"Welcome to {BRAND}!", body),
        text=f"Hi {user_name}!\n\nWelcome to {BRAND}. Happy domain hunting!",
    )


def purchase_confirmation_email(to: str, user_name: str, domain: str, amount: str, currency: str) -> EmailMessage:
    name = escape(user_name)
    body = f"""
        <h2>Hi {name}!</h2>
        <p>Congratulations! Your domain purchase has been confirmed.</p>
        <table>
          <tr><td>Domain</td><td><strong>{escape(domain)}</strong></td></tr>
          <tr><td>Amount</td><td>{escape(amount)} {escape(currency)}</td></tr>
        </table>
        <p>Your domain is now in your dashboard, where you can manage DNS settings and renewal options.</p>
    """
    return EmailMessage(
        to=to,
        subject=f"Domain Purchase Confirmation - {domain}",
        html=_layout("Purchase Confirmed!", body),
        text=f"Hi {user_name}!\n\nYour purchase of {domain} for {amount} {currency} is confirmed.",
    )
