"""
Project category options and validation.

The option list is fixed; a selection must be one of its values.
"""

from __future__ import annotations

from typing import Any

from contrib_engine.data_models import SelectOption, option_value

CATEGORY_OPTIONS: tuple[SelectOption, ...] = (
    SelectOption(value="wallets", text="Wallets"),
    SelectOption(value="gaming/metaverse", text="Gaming/Metaverse"),
    SelectOption(value="desci", text="DeSci"),
    SelectOption(value="infrastructure", text="Infrastructure"),
    SelectOption(value="nft", text="NFT"),
    SelectOption(value="dao", text="DAO"),
    SelectOption(value="social-impact", text="Social impact"),
    SelectOption(value="web2", text="Web2 expansion"),
    SelectOption(value="web3-product-partner", text="Web3 Product Partner"),
    SelectOption(value="other", text="Other"),
)


def validate_category(category: Any) -> str | None:
    """
    Validate a category selection.

    Parameters
    ----------
    category:
        A ``SelectOption`` or a raw category value.

    Returns
    -------
    str | None
        Error message, or None when the category is valid.
    """
    if category is None or category == "":
        return "Please select a category"
    if option_value(category) not in {o.value for o in CATEGORY_OPTIONS}:
        return "Please select a valid category"
    return None


def find_category(value: str) -> SelectOption | None:
    """Return the option for ``value`` (matched on value or label), if any."""
    needle = value.strip().lower()
    for option in CATEGORY_OPTIONS:
        if option.value == needle or option.text.lower() == needle:
            return option
    return None
