"""Decoder for Google encoded polylines, the format MBTA shapes use."""

from __future__ import annotations

from typing import Optional


def decode_polyline(encoded: Optional[str], precision: int = 5) -> list[tuple[float, float]]:
    """
    Decode an encoded polyline into ``(latitude, longitude)`` pairs in path order.

    Each coordinate is a zigzag-encoded signed delta from the previous point,
    written as 5-bit chunks offset by 63. Empty or None input gives [].
    """
    if not encoded:
        return []

    factor = 10 ** precision
    points: list[tuple[float, float]] = []
    index = lat = lng = 0
    length = len(encoded)
    while index < length:
        deltas = []
        for _ in range(2):
            result = shift = 0
            while True:
                if index >= length:
                    raise ValueError("Truncated polyline")
                b = ord(encoded[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lng += deltas[1]
        points.append((lat / factor, lng / factor))
    return points
