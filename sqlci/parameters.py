"""Helpers producing cmdlet parameters and artifact names."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, MutableSequence

PACKAGE_EXTENSION = "nupkg"


class ProductVersionOption(str, Enum):
    LATEST = "Latest"
    SPECIFIC = "Specific"


@dataclass(slots=True)
class SqlChangeAutomationVersionOption:
    option: ProductVersionOption = ProductVersionOption.LATEST
    specific_version: str | None = None

    @classmethod
    def parse(cls, value: str | None) -> "SqlChangeAutomationVersionOption":
        """Build an option from CLI text: ``latest`` (any case) or a version string."""

        text = (value or "").strip()
        if not text or text.lower() == ProductVersionOption.LATEST.value.lower():
            return cls()
        return cls(option=ProductVersionOption.SPECIFIC, specific_version=text)


def add_product_version_parameter(
    params: MutableSequence[str],
    version_option: SqlChangeAutomationVersionOption | None,
) -> None:
    params.append("-RequiredProductVersion")
    if version_option is not None and version_option.option is ProductVersionOption.SPECIFIC:
        params.append(version_option.specific_version or "")
    else:
        params.append(ProductVersionOption.LATEST.value)


def flatten_named_parameters(pairs: dict[str, str | bool | None]) -> List[str]:
    """Flatten ``{"Name": value}`` pairs into ``-Name value`` tokens.

    ``True`` emits a bare switch, ``False`` and ``None`` are skipped.
    """

    params: List[str] = []
    for name, value in pairs.items():
        if value is None or value is False:
            continue
        params.append(f"-{name}")
        if value is not True:
            params.append(str(value))
    return params


def construct_package_file_name(package_name: str, build_number: str) -> str:
    return f"{package_name}.{build_number}.{PACKAGE_EXTENSION}"


__all__ = [
    "PACKAGE_EXTENSION",
    "ProductVersionOption",
    "SqlChangeAutomationVersionOption",
    "add_product_version_parameter",
    "construct_package_file_name",
    "flatten_named_parameters",
]
