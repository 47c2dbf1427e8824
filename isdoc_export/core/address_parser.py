from typing import Protocol

from ..schema.models import Address


class AddressParser(Protocol):
    """Turns one free-text postal address into structured parts."""

    def parse(self, text: str) -> Address:
        ...


class CommaHeuristicAddressParser:
    """
    Best-effort parser for Czech style addresses: "<street> <number>, <PSČ> <city>".

    "Vinohradská 1245/53, 120 00 Praha 2" ->
        street="Vinohradská", building_number="1245/53",
        postal_code="120 00", city="Praha 2"

    Non-conforming input gives best-effort (possibly wrong) parts, never an error.
    """

    def parse(self, text: str) -> Address:
        text = text or ""
        parts = [p.strip() for p in text.split(",")]

        # Degenerate case: no comma, keep everything as street
        if len(parts) < 2:
            return Address(street=text)

        street_tokens = parts[0].split()
        building_number = street_tokens.pop() if street_tokens else ""
        street = " ".join(street_tokens)

        city_tokens = parts[1].split()
        postal_code = " ".join(city_tokens[:2])
        city = " ".join(city_tokens[2:])

        return Address(
            street=street,
            building_number=building_number,
            city=city,
            postal_code=postal_code,
        )


def parse_address_string(text: str) -> Address:
    return CommaHeuristicAddressParser().parse(text)
