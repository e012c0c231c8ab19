"""Carrier catalog: the carriers the shipping options map to."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Carrier:
    code: str
    name: str
    tracking_prefix: str
    estimated_days: int


CARRIERS = {
    "POSTNORD": Carrier("POSTNORD", "PostNord", "PN", 3),
    "DHL": Carrier("DHL", "DHL Express", "DHL", 1),
    "BRING": Carrier("BRING", "Bring", "BR", 3),
}


def carrier_for(code: str) -> Carrier:
    try:
        return CARRIERS[code]
    except KeyError:
        raise ValueError(f"Unknown carrier: {code}") from None
