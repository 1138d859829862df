"""Rule-table asset classification."""

from __future__ import annotations

import re
from dataclasses import dataclass

from portfolio_engine.portfolio.models import Asset, AssetCategory, AssetType

QUOTE_SUFFIXES = ("-USD", "-KRW", "-USDT", "USDT", "KRW")
QUOTE_PREFIXES = ("KRW-", "USDT-", "USD-")
WORD_SPLIT = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class ClassificationRule:
    """Matches when any of its conditions hold."""

    category: AssetCategory
    tickers: frozenset[str] = frozenset()
    keywords: tuple[str, ...] = ()
    asset_type: AssetType | None = None

    def __post_init__(self) -> None:
        if not (self.tickers or self.keywords) and self.asset_type is None:
            raise ValueError(f"Classification rule for {self.category.value} has no conditions.")
        if any(keyword != keyword.lower() for keyword in self.keywords):
            raise ValueError(f"Classification keywords must be lowercase: {self.keywords}")

    def matches(self, asset: Asset, symbols: tuple[str, ...], haystack: str) -> bool:
        if self.asset_type is not None and asset.asset_type == self.asset_type:
            return True
        if any(symbol in self.tickers for symbol in symbols):
            return True
        return any(f" {keyword} " in haystack for keyword in self.keywords)


STABLECOIN_TICKERS = frozenset({"USDT", "USDC", "DAI", "BUSD", "TUSD"})
CRYPTO_TICKERS = frozenset(
    {
        "ETH", "BNB", "XRP", "ADA", "SOL", "DOGE", "MATIC", "LTC", "BCH", "XLM",
        "LINK", "DOT", "AVAX", "ATOM", "UNI", "AAVE", "SUSHI", "SHIB", "APE", "SAND",
        "MANA", "FTM", "NEAR", "ALGO", "VET", "EOS", "TRX",
    }
)
BOND_TICKERS = frozenset(
    {"AGG", "BND", "TLT", "IEF", "SHY", "LQD", "HYG", "TIP", "VCIT", "GOVT", "VGSH", "SCHO", "MUB", "BNDX", "EMB"}
)
GOLD_TICKERS = frozenset({"GLD", "IAU", "GLDM", "SGOL", "PHYS", "XAU"})
COMMODITY_TICKERS = frozenset({"DBC", "GSG", "PDBC", "USO", "UNG", "DBA", "SLV", "COMT", "BCI"})

DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(AssetCategory.REALESTATE, asset_type=AssetType.ILLIQUID),
    ClassificationRule(AssetCategory.CASH, tickers=STABLECOIN_TICKERS),
    ClassificationRule(AssetCategory.BITCOIN, tickers=frozenset({"BTC", "XBT"}), keywords=("bitcoin",)),
    ClassificationRule(AssetCategory.ALTCOIN, tickers=CRYPTO_TICKERS, keywords=("ethereum",)),
    ClassificationRule(AssetCategory.BOND, tickers=BOND_TICKERS, keywords=("bond", "bonds", "treasury", "treasuries")),
    ClassificationRule(AssetCategory.GOLD, tickers=GOLD_TICKERS, keywords=("gold",)),
    ClassificationRule(AssetCategory.COMMODITY, tickers=COMMODITY_TICKERS, keywords=("commodity", "crude", "oil", "silver")),
    ClassificationRule(AssetCategory.CASH, keywords=("cash", "deposit", "savings", "money market")),
)
DEFAULT_CATEGORY = AssetCategory.LARGE_CAP


def _words(text: str) -> str:
    return f" {WORD_SPLIT.sub(' ', text.lower()).strip()} "


def _symbols(ticker: str | None) -> tuple[str, ...]:
    raw = (ticker or "").strip().upper()
    if not raw:
        return ()
    symbols = [raw]
    base = raw
    for prefix in QUOTE_PREFIXES:
        if base.startswith(prefix) and len(base) > len(prefix):
            base = base[len(prefix):]
            break
    for suffix in QUOTE_SUFFIXES:
        if base.endswith(suffix) and len(base) > len(suffix):
            base = base[: -len(suffix)]
            break
    if base != raw:
        symbols.append(base)
    return tuple(symbols)


class AssetClassifier:
    """Maps each holding to exactly one category; first matching rule wins."""

    def __init__(
        self,
        rules: tuple[ClassificationRule, ...] = DEFAULT_RULES,
        default: AssetCategory = DEFAULT_CATEGORY,
    ) -> None:
        self._rules = tuple(rules)
        self._default = default

    @property
    def default(self) -> AssetCategory:
        return self._default

    def classify(self, asset: Asset) -> AssetCategory:
        if asset.category is not None:
            return asset.category
        symbols = _symbols(asset.ticker)
        haystack = _words(f"{asset.name or ''} {asset.ticker or ''}")
        for rule in self._rules:
            if rule.matches(asset, symbols, haystack):
                return rule.category
        return self._default


def classify(asset: Asset) -> AssetCategory:
    return AssetClassifier().classify(asset)
