"""Address normalization ahead of provider dispatch.

Free-text input is split on commas into three groups: street, city and
"STATE ZIP". Structured input is taken field by field. Both produce the
same NormalizedAddress, which every provider receives unchanged.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from loguru import logger

from district_lookup.exceptions import MalformedAddress

MISSING_COMPONENTS_MESSAGE = "Address must include at least street and city/state"


@dataclass(frozen=True)
class AddressInput:
    """Raw address as supplied by a caller.

    Either ``text`` is set (free-text mode) or the structured fields are.
    """

    text: Optional[str] = None
    street: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip5: Optional[str] = None
    zip4: Optional[str] = None

    @classmethod
    def from_text(cls, text: Optional[str]) -> "AddressInput":
        return cls(text=text)

    @property
    def is_structured(self) -> bool:
        return self.text is None and any(
            (self.street, self.apartment, self.city, self.state, self.zip5, self.zip4)
        )

    def describe(self) -> str:
        """One-line rendering used for logging and the report's originalInput."""
        if not self.is_structured:
            return self.text or ""
        parts = [p for p in (self.street, self.apartment, self.city) if p]
        tail = " ".join(p for p in (self.state, self.zip5) if p)
        if tail:
            parts.append(tail)
        return ", ".join(parts)


@dataclass(frozen=True)
class NormalizedAddress:
    """Canonical address components shared by every provider."""

    street: str
    city: str
    state: str
    zip5: str = ""
    zip4: str = ""
    secondary: str = ""  # Unit/suite, from the apartment field or trailing comma groups

    @property
    def zip_code(self) -> str:
        """ZIP in ``12345`` or ``12345-6789`` form, or empty."""
        if self.zip5 and self.zip4:
            return f"{self.zip5}-{self.zip4}"
        return self.zip5

    def one_line(self, include_secondary: bool = False) -> str:
        """Format as ``street, city, ST zip`` for one-line geocoder endpoints."""
        street = self.street
        if include_secondary and self.secondary:
            street = f"{street} {self.secondary}"
        line = f"{street}, {self.city}, {self.state}"
        if self.zip5:
            line += f" {self.zip5}"
        return line

    def as_dict(self) -> dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip5": self.zip5,
            "zip4": self.zip4,
            "secondary": self.secondary,
        }


def _normalize_state(token: str) -> str:
    state = token.strip().upper()
    if len(state) != 2 or not state.isalpha():
        raise MalformedAddress(f"State must be a 2-letter code, got '{token.strip()}'")
    return state


def _split_zip(token: str) -> tuple[str, str]:
    """Split ``12345-6789`` into (zip5, zip4); a bare zip gives an empty zip4."""
    token = token.strip()
    if not token:
        return "", ""
    zip5, _, zip4 = token.partition("-")
    return zip5.strip(), zip4.strip()


def _parse_free_text(text: str) -> NormalizedAddress:
    groups = [g.strip() for g in text.split(",")]
    groups = [g for g in groups if g]

    if len(groups) < 3:
        raise MalformedAddress(MISSING_COMPONENTS_MESSAGE)

    street, city, state_zip = groups[0], groups[1], groups[2]
    trailing = groups[3:]

    tokens = state_zip.split()
    state = _normalize_state(tokens[0])
    zip5, zip4 = _split_zip(tokens[1]) if len(tokens) > 1 else ("", "")

    if trailing:
        logger.debug("Keeping trailing address groups as secondary: {}", trailing)

    return NormalizedAddress(
        street=street,
        city=city,
        state=state,
        zip5=zip5,
        zip4=zip4,
        secondary=", ".join(trailing),
    )


def _parse_structured(address: AddressInput) -> NormalizedAddress:
    street = (address.street or "").strip()
    city = (address.city or "").strip()

    if not street or not city:
        raise MalformedAddress(MISSING_COMPONENTS_MESSAGE)

    zip5 = (address.zip5 or "").strip()
    zip4 = (address.zip4 or "").strip()
    if zip5 and not zip4 and "-" in zip5:
        zip5, zip4 = _split_zip(zip5)

    return NormalizedAddress(
        street=street,
        city=city,
        state=_normalize_state(address.state or ""),
        zip5=zip5,
        zip4=zip4,
        secondary=(address.apartment or "").strip(),
    )


def normalize(address: Union[AddressInput, str, None]) -> NormalizedAddress:
    """
    Normalize a raw address into canonical components.

    Args:
        address: AddressInput, or a free-text string such as
            ``"2330 McCulloch Blvd, Lake Havasu City, AZ 86403"``.

    Returns:
        NormalizedAddress with an uppercase 2-letter state.

    Raises:
        MalformedAddress: If the input is empty, has fewer than three comma
            groups (free text), lacks street or city (structured), or carries
            a state token that is not two letters.
    """
    if address is None or isinstance(address, str):
        address = AddressInput.from_text(address)

    if address.is_structured:
        normalized = _parse_structured(address)
    else:
        if not address.text or not address.text.strip():
            raise MalformedAddress("Address is required")
        normalized = _parse_free_text(address.text)

    logger.debug("Normalized address: {}", normalized)
    return normalized
