from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class PriceQuote:
    """Price of the asset in USD, stamped when the fetch completed."""
    value: float
    timestamp: int
    asset: str = "bitcoin"

    def to_dict(self) -> Dict[str, Any]:
        """Render as ``{"bitcoin": {"usd": ..., "last_updated_at": ...}}``."""
        return {
            self.asset: {
                'usd': self.value,
                'last_updated_at': self.timestamp,
            }
        }

    def to_document(self) -> Dict[str, Any]:
        """Flat form used by QuoteStorage."""
        return {
            'asset': self.asset,
            'usd': self.value,
            'timestamp': self.timestamp,
        }
