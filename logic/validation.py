"""
logic/validation.py
Pure logic: validates a sign-up form before it reaches the ledger.
No I/O. No business rules about seats or duplicates.
"""

from typing import Any, Dict, Optional

from logic.errors import ValidationError

REQUIRED_FIELDS_MESSAGE = "Campos obrigatórios: nome, email, telefone"


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_registration(
    nome: Optional[str],
    email: Optional[str],
    telefone: Optional[str],
    cidade: Optional[str] = None,
    newsletter: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Validates the fields of a registration form.

    Rules:
    - nome, email, telefone are required and must not be blank
    - cidade is optional (blank -> None)
    - newsletter defaults to False
    - surrounding whitespace is stripped; case is preserved
      (e-mail uniqueness is an exact, case-sensitive match)

    Returns:
        dict with cleaned `name`, `email`, `phone`, `city`, `newsletter`.

    Raises:
        ValidationError if a required field is missing.
    """
    name = _clean(nome)
    mail = _clean(email)
    phone = _clean(telefone)

    if not name or not mail or not phone:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    city = _clean(cidade) or None

    return {
        "name": name,
        "email": mail,
        "phone": phone,
        "city": city,
        "newsletter": bool(newsletter),
    }
