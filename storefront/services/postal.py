"""Consulta de CEP (ViaCEP) para autocompletar la dirección de entrega."""
import logging
import re

import requests

from storefront.core.errors import InvalidPostalCode, PostalCodeNotFound, PostalLookupError
from storefront.core.schemas import PostalAddress

log = logging.getLogger(__name__)


def normalize_cep(cep: str) -> str:
    digits = re.sub(r"\D", "", cep or "")
    if len(digits) != 8:
        raise InvalidPostalCode(f"cep must have 8 digits, got {len(digits)}")
    return digits


def lookup_postal_code(cep: str, url_template: str, timeout: float = 5.0) -> PostalAddress:
    digits = normalize_cep(cep)
    try:
        r = requests.get(url_template.format(cep=digits), timeout=timeout)
        r.raise_for_status()
        data = r.json()
    except (requests.RequestException, ValueError) as exc:
        log.warning("postal lookup failed for %s: %s", digits, exc)
        raise PostalLookupError("postal_lookup_failed") from exc

    if not isinstance(data, dict) or data.get("erro"):
        raise PostalCodeNotFound(digits)
    return PostalAddress(
        cep=digits,
        street=data.get("logradouro") or "",
        neighborhood=data.get("bairro") or "",
        city=data.get("localidade") or "",
        state=data.get("uf") or "",
    )
