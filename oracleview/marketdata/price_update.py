import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from oracleview.events import DomainEvent, event


__all__ = [
    "MalformedPriceUpdate",
    "PriceComponent",
    "PriceMetadata",
    "PriceUpdateEvent",
    "decode_price",
    "normalize_feed_id",
    "parse_exponent",
]


class MalformedPriceUpdate(ValueError):
    """Raised when a price update cannot be parsed or decoded."""
    pass


def normalize_feed_id(feed_id: str) -> str:
    """Strip an optional ``0x`` prefix and lowercase a feed identifier."""
    s = str(feed_id).strip().lower()
    if s.startswith("0x"):
        s = s[2:]
    return s


def parse_exponent(expo: Any) -> int:
    """
    Validate a decimal exponent.

    Integers and integer-valued strings pass; integral floats such as
    ``-8.0`` are accepted as their integer. Anything else (``-8.9``,
    ``True``, ``"abc"``) is malformed rather than truncated.
    """
    if isinstance(expo, bool):
        raise MalformedPriceUpdate(f"exponent must be an integer, got {expo!r}")
    if isinstance(expo, int):
        return expo
    if isinstance(expo, float):
        if expo.is_integer():
            return int(expo)
        raise MalformedPriceUpdate(f"exponent must be an integer, got {expo!r}")
    if isinstance(expo, str):
        try:
            return int(expo.strip())
        except ValueError as exc:
            raise MalformedPriceUpdate(f"exponent must be an integer, got {expo!r}") from exc
    raise MalformedPriceUpdate(f"exponent must be an integer, got {expo!r}")


def decode_price(mantissa: str | int, expo: int | str) -> float:
    """
    Decode an oracle ``(mantissa, exponent)`` pair into a real number.

    Decimal arithmetic is used so that e.g. ``("10000000000", -8)`` decodes to
    exactly ``100.0`` rather than the nearest product of two binary floats.

    Raises:
        MalformedPriceUpdate: if either part is not numeric or the result
            is not finite.
    """
    try:
        exponent = parse_exponent(expo)
        value = Decimal(str(mantissa).strip()).scaleb(exponent)
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise MalformedPriceUpdate(
            f"cannot decode price mantissa={mantissa!r} expo={expo!r}"
        ) from exc

    out = float(value)
    if not math.isfinite(out):
        raise MalformedPriceUpdate(
            f"decoded price is not finite: mantissa={mantissa!r} expo={expo!r}"
        )
    return out


@dataclass(frozen=True)
class PriceComponent:
    """
    One priced quantity of an oracle update as received on the wire.

    Attributes:
        price: Raw mantissa (string or integer, as delivered)
        expo: Decimal exponent applied to both price and conf
        publish_time: Integer seconds since epoch; the ordering key
        conf: Optional raw confidence mantissa
    """

    price: str | int
    expo: int
    publish_time: int
    conf: Optional[str | int] = None

    @property
    def value(self) -> float:
        """Decoded price."""
        return decode_price(self.price, self.expo)

    @property
    def confidence(self) -> Optional[float]:
        """Decoded confidence interval, or None if absent."""
        if self.conf is None:
            return None
        return decode_price(self.conf, self.expo)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PriceComponent":
        try:
            publish_time = raw["publish_time"]
            if isinstance(publish_time, bool) or not isinstance(publish_time, (int, str)):
                raise TypeError(f"publish_time must be an integer, got {publish_time!r}")
            return cls(
                price=raw["price"],
                expo=parse_exponent(raw["expo"]),
                publish_time=int(publish_time),
                conf=raw.get("conf"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedPriceUpdate(f"invalid price component: {raw!r}") from exc


@dataclass(frozen=True)
class PriceMetadata:
    """Delivery metadata attached to an update by the oracle network."""

    slot: Optional[int] = None
    prev_publish_time: Optional[int] = None
    proof_available_time: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PriceMetadata":
        def _opt_int(key: str) -> Optional[int]:
            v = raw.get(key)
            return None if v is None else int(v)

        try:
            return cls(
                slot=_opt_int("slot"),
                prev_publish_time=_opt_int("prev_publish_time"),
                proof_available_time=_opt_int("proof_available_time"),
            )
        except (TypeError, ValueError) as exc:
            raise MalformedPriceUpdate(f"invalid metadata: {raw!r}") from exc


@event
class PriceUpdateEvent(DomainEvent):
    """
    A single oracle price update, immutable once received.

    ``timestamp`` (inherited) records when the update was received locally;
    ``price.publish_time`` is the authoritative ordering key.

    Example:
        >>> ev = PriceUpdateEvent.from_raw({
        ...     "id": "c2289a6a...749ff2a4",
        ...     "price": {"price": "10000000000", "expo": -8, "publish_time": 1000},
        ... })
        >>> ev.decoded_price
        100.0
    """

    feed_id: str
    price: PriceComponent
    ema_price: Optional[PriceComponent] = None
    metadata: Optional[PriceMetadata] = None

    @property
    def publish_time(self) -> int:
        return self.price.publish_time

    @property
    def decoded_price(self) -> float:
        return self.price.value

    @property
    def dedup_key(self) -> tuple[str, int, str, int]:
        """Identity of the update ignoring when it was received."""
        return (
            normalize_feed_id(self.feed_id),
            self.price.publish_time,
            str(self.price.price),
            self.price.expo,
        )

    def snapshot(self, symbol: str) -> dict[str, Any]:
        """Decoded summary record for downstream analysis consumers."""
        return {
            "id": self.feed_id,
            "symbol": symbol,
            "price": self.decoded_price,
            "confidence": self.price.confidence,
            "publish_time": self.publish_time,
            "ema_price": self.ema_price.value if self.ema_price else None,
            "ema_confidence": self.ema_price.confidence if self.ema_price else None,
        }

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PriceUpdateEvent":
        """
        Build an event from a feed payload.

        Expected shape::

            {"id": "...",
             "price": {"price": "...", "conf": "...", "expo": -8, "publish_time": 1},
             "ema_price": {...},            # optional
             "metadata": {"slot": 1, ...}}  # optional

        Raises:
            MalformedPriceUpdate: on any missing or invalid field.
        """
        if not isinstance(raw, Mapping):
            raise MalformedPriceUpdate(f"price update must be a mapping, got {type(raw).__name__}")

        feed_id = raw.get("id")
        if not feed_id:
            raise MalformedPriceUpdate(f"price update without feed id: {raw!r}")

        price_raw = raw.get("price")
        if not isinstance(price_raw, Mapping):
            raise MalformedPriceUpdate(f"price update without price block: {raw!r}")

        ema_raw = raw.get("ema_price")
        meta_raw = raw.get("metadata")

        return cls(
            feed_id=normalize_feed_id(feed_id),
            price=PriceComponent.from_raw(price_raw),
            ema_price=PriceComponent.from_raw(ema_raw) if isinstance(ema_raw, Mapping) else None,
            metadata=PriceMetadata.from_raw(meta_raw) if isinstance(meta_raw, Mapping) else None,
        )
