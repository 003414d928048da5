# SPDX-License-Identifier: LGPL-2.1-or-later
# See Notices.txt for copyright information

""" Division by invariant integers using multiplication.

code for computing, simulating and testing the multiply/shift parameters
that replace a division by a fixed divisor.

Described in: https://gmplib.org/~tege/divcnst-pldi94.pdf
"""

from nmigen.hdl.ast import Const


class ZeroDivisorError(ZeroDivisionError):
    """ Raised when constructing a ``Divider`` for a divisor of zero. """


def ilog2(value):
    """ Floor of the base-2 logarithm of ``value``. """
    if value <= 0:
        raise ValueError(f"ilog2 is undefined for {value}")
    return value.bit_length() - 1


def ceil_log2(value):
    """ Smallest ``l`` such that ``2 ** l >= value``.

    Exact powers of two give their exact logarithm.
    """
    l = ilog2(value)
    if (1 << l) < value:
        l += 1
    return l


def mul_hi(lhs, rhs, bit_width):
    """ Upper half of the double-width product of two ``bit_width`` ints.

    :param lhs: the left-hand-side, truncated to ``bit_width`` bits
    :param rhs: the right-hand-side, truncated to ``bit_width`` bits
    :param bit_width: the bit width of the operands and of the result
    :returns int: ``(lhs * rhs) >> bit_width``
    """
    lhs = Const.normalize(lhs, (bit_width, False))
    rhs = Const.normalize(rhs, (bit_width, False))
    product = Const.normalize(lhs * rhs, (bit_width * 2, False))
    return product >> bit_width


class Divider:
    """ Unsigned division and remainder by a fixed divisor.

    The divisor is replaced by a multiplier and two shifts::

        t = mul_hi(dividend, multiplier)
        quotient = (t + ((dividend - t) >> sh1)) >> sh2

    Divisors and dividends live in the domain half-width ``bit_width``.
    The working double width ``2 * bit_width`` is only used for the
    reciprocal and the multiply-high.

    :attribute divisor: the divisor
    :attribute bit_width: the bit width of divisors/dividends/results
    :attribute double_width: the bit width of intermediate products
    :attribute multiplier: the rounded-up scaled reciprocal of ``divisor``
    :attribute sh1: the shift applied to the correction term (0 or 1)
    :attribute sh2: the final shift
    """

    __slots__ = ("_divisor", "_bit_width", "_multiplier", "_sh1", "_sh2")

    def __init__(self, divisor, bit_width):
        """ Create a Divider.

        :param divisor: the divisor/denominator
        :param bit_width: the bit width of the inputs/outputs
        """
        assert bit_width > 0
        divisor = Const.normalize(divisor, (bit_width, False))
        if divisor == 0:
            raise ZeroDivisorError("divisor must be nonzero")

        l = ceil_log2(divisor)
        double_width = bit_width * 2

        half_range = 1 << bit_width
        two_to_l_minus_divisor = (1 << l) - divisor
        scaled = Const.normalize(half_range * two_to_l_minus_divisor,
                                 (double_width, False))
        multiplier = scaled // divisor + 1

        # drop the carry of the rounding; only the low half is meaningful
        multiplier = Const.normalize(multiplier, (bit_width, False))

        object.__setattr__(self, "_divisor", divisor)
        object.__setattr__(self, "_bit_width", bit_width)
        object.__setattr__(self, "_multiplier", multiplier)
        object.__setattr__(self, "_sh1", min(l, 1))
        object.__setattr__(self, "_sh2", 0 if l == 0 else l - 1)

    @classmethod
    def with_double_width(cls, divisor, double_width):
        """ Create a Divider from the width of its intermediate products.

        :param divisor: the divisor/denominator
        :param double_width: the double bit width, must be even
        """
        assert double_width > 0 and double_width % 2 == 0
        return cls(divisor, double_width // 2)

    @property
    def divisor(self):
        return self._divisor

    @property
    def bit_width(self):
        return self._bit_width

    @property
    def double_width(self):
        return self._bit_width * 2

    @property
    def multiplier(self):
        return self._multiplier

    @property
    def sh1(self):
        return self._sh1

    @property
    def sh2(self):
        return self._sh2

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, rhs):
        """ Equal."""
        if not isinstance(rhs, Divider):
            return NotImplemented
        return (self.divisor, self.bit_width) == (rhs.divisor, rhs.bit_width)

    def __hash__(self):
        return hash((self.divisor, self.bit_width))

    def __repr__(self):
        """ Get representation."""
        return f"Divider({self.divisor:#x}, {self.bit_width}, " \
            + f"multiplier={self.multiplier:#x}, " \
            + f"sh1={self.sh1}, sh2={self.sh2})"

    def divide(self, dividend):
        """ Compute ``dividend // divisor``.

        :param dividend: the dividend/numerator, truncated to ``bit_width``
            bits
        :returns int: the quotient
        """
        dividend = Const.normalize(dividend, (self.bit_width, False))
        prod_upper_half = mul_hi(dividend, self.multiplier, self.bit_width)
        correction = (dividend - prod_upper_half) >> self.sh1
        return (prod_upper_half + correction) >> self.sh2

    def remainder(self, dividend):
        """ Compute ``dividend % divisor``.

        :param dividend: the dividend/numerator, truncated to ``bit_width``
            bits
        :returns int: the remainder
        """
        dividend = Const.normalize(dividend, (self.bit_width, False))
        return dividend - self.divisor * self.divide(dividend)

    def div_rem(self, dividend):
        """ Compute the quotient and remainder together.

        :returns tuple: ``(quotient, remainder)``
        """
        dividend = Const.normalize(dividend, (self.bit_width, False))
        quotient = self.divide(dividend)
        return quotient, dividend - self.divisor * quotient
