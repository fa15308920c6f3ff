# services/email_templates.py

from html import escape
from typing import Dict
from urllib.parse import quote

from config import Settings
from logic.ledger import Registrant

_STYLE = """
  body { font-family: 'Arial', sans-serif; line-height: 1.6; color: #333; }
  .container { max-width: 600px; margin: 0 auto; padding: 20px; }
  .header { background: linear-gradient(135deg, #4B0082, #2D0052); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }
  .content { background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }
  .badge { background: #DAA520; color: #4B0082; padding: 8px 16px; border-radius: 20px; display: inline-block; font-weight: bold; margin-bottom: 20px; }
  .info-box { background: white; padding: 20px; border-left: 4px solid #DAA520; margin: 20px 0; border-radius: 5px; }
  .button { display: inline-block; background: #25D366; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; margin: 20px 0; font-weight: bold; }
"""


def _whatsapp_link(settings: Settings, text: str) -> str:
    return f"https://api.whatsapp.com/send?phone={quote(settings.WHATSAPP_NUMBER)}&text={quote(text)}"


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<style>{_STYLE}</style></head><body><div class=\"container\">"
        f"<div class=\"header\"><h1>{title}</h1></div>"
        f"<div class=\"content\">{body}</div>"
        "</div></body></html>"
    )


def format_confirmation_email(registrant: Registrant, sequence: int, settings: Settings) -> Dict[str, str]:
    subject = f"✅ Inscrição Confirmada - {settings.EVENT_NAME}"

    lines = []
    lines.append(f"<div class=\"badge\">INSCRIÇÃO #{sequence:03d}</div>")
    lines.append(f"<p>Olá, <strong>{escape(registrant.name)}</strong>!</p>")
    lines.append(f"<p>Sua vaga para <strong>{escape(settings.EVENT_NAME)}</strong> está confirmada!</p>")
    lines.append("<div class=\"info-box\">")
    lines.append(f"<p><strong>Data:</strong> {escape(settings.EVENT_DATE)}<br>")
    lines.append(f"<strong>Local:</strong> {escape(settings.EVENT_VENUE)}</p>")
    lines.append("</div>")
    lines.append("<p><strong>Seus dados:</strong></p><ul>")
    lines.append(f"<li>Nome: {escape(registrant.name)}</li>")
    lines.append(f"<li>E-mail: {escape(registrant.email)}</li>")
    lines.append(f"<li>WhatsApp: {escape(registrant.phone)}</li>")
    if registrant.city:
        lines.append(f"<li>Cidade: {escape(registrant.city)}</li>")
    lines.append("</ul>")
    link = _whatsapp_link(settings, "Olá! Tenho uma dúvida sobre a palestra.")
    lines.append(f"<center><a href=\"{escape(link)}\" class=\"button\">Tirar Dúvidas no WhatsApp</a></center>")

    return {"subject": subject, "html": _page("Inscrição Confirmada!", "\n".join(lines))}


def format_waitlist_email(registrant: Registrant, position: int, settings: Settings) -> Dict[str, str]:
    subject = f"📋 Lista de Espera - {settings.EVENT_NAME}"

    lines = []
    lines.append(f"<div class=\"badge\">POSIÇÃO #{position}</div>")
    lines.append(f"<p>Olá, <strong>{escape(registrant.name)}</strong>!</p>")
    lines.append(
        f"<p>Obrigado pelo seu interesse! Você foi adicionado à <strong>Lista de Espera</strong> "
        f"de {escape(settings.EVENT_NAME)}.</p>"
    )
    lines.append("<div class=\"info-box\">")
    lines.append("<p>Se houver desistências ou cancelamentos, entraremos em contato com você por:</p><ul>")
    lines.append(f"<li>WhatsApp: {escape(registrant.phone)}</li>")
    lines.append(f"<li>E-mail: {escape(registrant.email)}</li>")
    lines.append("</ul></div>")

    return {"subject": subject, "html": _page("Você está na Lista de Espera", "\n".join(lines))}


def format_test_email(settings: Settings) -> str:
    return (
        "<div style=\"font-family:Arial,sans-serif;padding:20px\">"
        "<h2 style=\"color:#4B0082;margin:0 0 10px\">✅ E-mail de Teste</h2>"
        f"<p>Envio de teste via {escape(settings.EMAIL_PROVIDER)}.</p>"
        f"<p><strong>Remetente:</strong> {escape(settings.EMAIL_FROM)}</p>"
        "</div>"
    )
