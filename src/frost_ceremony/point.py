"""
Points on secp256k1.

Every public value a ceremony exchanges (coefficient commitments, nonce
commitments, verifying shares and the group public key) is a Point. Points
travel between calls as SEC 1 compressed hex strings; signatures and
challenge hashes use the BIP340 x-only encoding.
"""

from __future__ import annotations
from typing import Optional
from .constants import P, Q, G_x, G_y


class Point:
    """Class representing an elliptic curve point."""

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None):
        """
        Initialize a point on the curve. Leaving both coordinates as None
        yields the point at infinity, the identity element.
        """
        self.x = x
        self.y = y

    @staticmethod
    def _y_from_x(x: int) -> int:
        """
        Recover an even y-coordinate for x.

        Raises:
        ValueError: If x is not the x-coordinate of a curve point.
        """
        if not 0 <= x < P:
            raise ValueError("x-coordinate is not a field element.")

        y_squared = (pow(x, 3, P) + 7) % P
        y = pow(y_squared, (P + 1) // 4, P)
        if pow(y, 2, P) != y_squared:
            raise ValueError("x-coordinate is not on the curve.")

        return y if y % 2 == 0 else P - y

    @classmethod
    def lift_x(cls, x: int) -> Point:
        """Return the point with x-coordinate x and an even y-coordinate."""
        return cls(x, cls._y_from_x(x))

    @classmethod
    def sec_deserialize(cls, hex_public_key: str) -> Point:
        """
        Deserialize a SEC 1 compressed hex-encoded point.

        Parameters:
        hex_public_key (str): Hexadecimal string of 33 bytes.

        Returns:
        Point: The decoded point.

        Raises:
        ValueError: If the input is not valid hex, has the wrong length or
        prefix, or does not describe a point on the curve.
        """
        try:
            hex_bytes = bytes.fromhex(hex_public_key)
        except (TypeError, ValueError) as e:
            raise ValueError("Invalid hex input for SEC 1 point.") from e

        if len(hex_bytes) != 33:
            raise ValueError(
                "Input must be exactly 33 bytes long for SEC 1 compressed format."
            )
        if hex_bytes[0] not in (2, 3):
            raise ValueError("Invalid SEC 1 compressed prefix.")

        x = int.from_bytes(hex_bytes[1:], "big")
        even_y = cls._y_from_x(x)
        y = even_y if hex_bytes[0] == 2 else P - even_y
        return cls(x, y)

    def sec_serialize(self) -> bytes:
        """
        Serialize the point to its SEC 1 compressed format.

        Raises:
        ValueError: If the point is at infinity.
        """
        if self.x is None or self.y is None:
            raise ValueError("Cannot serialize the point at infinity.")

        prefix = b"\x02" if self.y % 2 == 0 else b"\x03"
        return prefix + self.x.to_bytes(32, "big")

    def xonly_serialize(self) -> bytes:
        """
        Serialize the x-coordinate of the point to 32 big-endian bytes.

        Raises:
        ValueError: If the point is at infinity.
        """
        if self.x is None:
            raise ValueError("The x-coordinate is not finite.")

        return self.x.to_bytes(32, "big")

    def hex(self) -> str:
        """SEC 1 compressed hex encoding, the form used inside packages."""
        return self.sec_serialize().hex()

    def is_zero(self) -> bool:
        """Check if the point is the point at infinity."""
        return self.x is None or self.y is None

    def has_even_y(self) -> bool:
        if self.y is None:
            raise ValueError("The point at infinity has no y-coordinate.")
        return self.y % 2 == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __neg__(self) -> Point:
        if self.x is None or self.y is None:
            return self

        return self.__class__(self.x, P - self.y)

    def _dbl(self) -> Point:
        """
        Double the point. Doubling the point at infinity, or a point with
        y = 0, gives the point at infinity.
        """
        if self.x is None or self.y is None or self.y == 0:
            return self.__class__()

        x = self.x
        y = self.y
        s = (3 * x * x * pow(2 * y, P - 2, P)) % P
        sum_x = (s * s - 2 * x) % P
        sum_y = (s * (x - sum_x) - y) % P

        return self.__class__(sum_x, sum_y)

    def __add__(self, other: Point) -> Point:
        """
        Add two points.

        Raises:
        ValueError: If other is not a Point.
        """
        if not isinstance(other, Point):
            raise ValueError("The other object must be an instance of Point")

        if self == other:
            return self._dbl()
        if self.x is None or self.y is None:
            return other
        if other.x is None or other.y is None:
            return self
        if self.x == other.x and self.y != other.y:
            return self.__class__()  # Point at infinity
        s = ((other.y - self.y) * pow(other.x - self.x, P - 2, P)) % P
        sum_x = (s * s - self.x - other.x) % P
        sum_y = (s * (self.x - sum_x) - self.y) % P

        return self.__class__(sum_x, sum_y)

    def __sub__(self, other: Point) -> Point:
        if not isinstance(other, Point):
            raise ValueError("The other object must be an instance of Point")

        return self + -other

    def __rmul__(self, scalar: int) -> Point:
        """
        Multiply this point by an integer scalar using double-and-add,
        with the scalar reduced modulo the curve order.

        Raises:
        ValueError: If the scalar is not an integer.
        """
        if not isinstance(scalar, int):
            raise ValueError("The scalar must be an integer")

        scalar = scalar % Q

        p = self
        r = self.__class__()
        i = 1

        while i <= scalar:
            if i & scalar:
                r = r + p
            p = p._dbl()
            i <<= 1

        return r

    def __repr__(self) -> str:
        if self.is_zero():
            return f"{self.__class__.__name__}(x=None, y=None)"
        return f"{self.__class__.__name__}(x={self.x}, y={self.y})"


# The generator point G
G: Point = Point(G_x, G_y)
