from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

from .models import to_decimal


@dataclass
class TaxBracket:
    up_to: Optional[Decimal]  # None for the open-ended top band
    rate: Decimal


@dataclass
class FicaRates:
    social_security_rate: Decimal
    social_security_wage_base: Decimal
    medicare_rate: Decimal
    additional_medicare_rate: Decimal
    additional_medicare_threshold: Decimal


TAX_YEAR_2024 = {
    "version": "2024",
    "federal": {
        "single": [
            {"up_to": 11600, "rate": "0.10"},
            {"up_to": 47150, "rate": "0.12"},
            {"up_to": 100525, "rate": "0.22"},
            {"up_to": 191950, "rate": "0.24"},
            {"up_to": 243725, "rate": "0.32"},
            {"up_to": 609350, "rate": "0.35"},
            {"up_to": None, "rate": "0.37"},
        ],
        "married": [
            {"up_to": 23200, "rate": "0.10"},
            {"up_to": 94300, "rate": "0.12"},
            {"up_to": 201050, "rate": "0.22"},
            {"up_to": 383900, "rate": "0.24"},
            {"up_to": 487450, "rate": "0.32"},
            {"up_to": 731200, "rate": "0.35"},
            {"up_to": None, "rate": "0.37"},
        ],
    },
    "default_state": "MT",
    "states": {
        "MT": [{"up_to": 20500, "rate": "0.047"}, {"up_to": None, "rate": "0.059"}],
        "CA": [{"up_to": None, "rate": "0.013"}],
        "NY": [{"up_to": None, "rate": "0.04"}],
        "AK": [{"up_to": None, "rate": "0"}],
        "FL": [{"up_to": None, "rate": "0"}],
        "NH": [{"up_to": None, "rate": "0"}],
        "NV": [{"up_to": None, "rate": "0"}],
        "SD": [{"up_to": None, "rate": "0"}],
        "TN": [{"up_to": None, "rate": "0"}],
        "TX": [{"up_to": None, "rate": "0"}],
        "WA": [{"up_to": None, "rate": "0"}],
        "WY": [{"up_to": None, "rate": "0"}],
    },
    "fica": {
        "social_security_rate": "0.062",
        "social_security_wage_base": 168600,
        "medicare_rate": "0.0145",
        "additional_medicare_rate": "0.009",
        "additional_medicare_threshold": 200000,
    },
}


def _brackets(rows: List[dict]) -> List[TaxBracket]:
    return [
        TaxBracket(
            up_to=None if row.get("up_to") is None else to_decimal(row["up_to"]),
            rate=to_decimal(row["rate"]),
        )
        for row in rows
    ]


class TaxTable:
    def __init__(self, version: str, federal: dict, states: dict, fica: dict, default_state: str = "MT"):
        self.version = version
        self.federal = federal
        self.states = {code.upper(): rows for code, rows in states.items()}
        self.default_state = default_state.upper()
        self.fica = FicaRates(**{name: to_decimal(value) for name, value in fica.items()})
        if self.default_state not in self.states:
            raise KeyError(f"Default state {self.default_state} not configured in tax table {version}")

    @classmethod
    def from_dict(cls, data: dict) -> "TaxTable":
        return cls(
            version=str(data["version"]),
            federal=data["federal"],
            states=data.get("states", {}),
            fica=data["fica"],
            default_state=data.get("default_state", "MT"),
        )

    def brackets_for(self, level: str, filing_status: str, state: Optional[str] = None) -> List[TaxBracket]:
        if level == "federal":
            rows = self.federal.get(filing_status) or self.federal["single"]
            return _brackets(rows)
        if state is None or state.upper() not in self.states:
            raise KeyError(f"State {state} not configured in tax table {self.version}")
        return _brackets(self.states[state.upper()])

    def state_brackets(self, state: Optional[str]) -> List[TaxBracket]:
        """Brackets for ``state``, falling back to the table's default state."""
        code = (state or "").upper()
        if code not in self.states:
            code = self.default_state
        return self.brackets_for("state", "single", code)


def default_tax_table() -> TaxTable:
    return TaxTable.from_dict(TAX_YEAR_2024)


class TaxTableRepository:
    def __init__(self, base_path: Path):
        self.base_path = base_path

    def available_versions(self) -> List[str]:
        return sorted([p.stem for p in self.base_path.glob("*.json")])

    def load(self, version: str) -> TaxTable:
        file_path = self.base_path / f"{version}.json"
        if not file_path.exists():
            raise FileNotFoundError(f"Tax table version {version} not found at {file_path}")
        with file_path.open("r", encoding="utf-8") as handle:
            data: Dict = json.load(handle)
        data.setdefault("version", version)
        return TaxTable.from_dict(data)
