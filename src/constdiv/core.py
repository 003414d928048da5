# SPDX-License-Identifier: LGPL-2.1-or-later
# See Notices.txt for copyright information
""" Core of the divide-by-constant pipeline.

Algorithm based on ``algorithm.Divider``.

Formulas computed are:
* multiply-high stage:
    ``prod_upper_half == (dividend * multiplier) >> bit_width``
* final stage:
    ``quotient == (prod_upper_half +
                   ((dividend - prod_upper_half) >> sh1)) >> sh2``
    ``remainder == dividend - quotient * divisor``

The divisor, multiplier and shifts are constants of the generated hardware.
"""
from nmigen import Elaboratable, Module, Signal, Const

from constdiv.algorithm import Divider


class ConstDivCoreConfig:
    """ Configuration for core of the divide-by-constant pipeline.

    :attribute divider: the ``Divider`` holding the derived constants.
    :attribute bit_width: bit-width of the dividend, quotient and remainder.
    """

    def __init__(self, divisor, bit_width):
        """ Create a ``ConstDivCoreConfig`` instance. """
        self.divider = Divider(divisor, bit_width)
        self.bit_width = bit_width
        print(f"{self}: multiplier={self.multiplier:#x} "
              f"sh1={self.sh1} sh2={self.sh2}")

    def __repr__(self):
        """ Get repr. """
        return f"ConstDivCoreConfig({self.divisor}, {self.bit_width})"

    @property
    def divisor(self):
        return self.divider.divisor

    @property
    def multiplier(self):
        return self.divider.multiplier

    @property
    def sh1(self):
        return self.divider.sh1

    @property
    def sh2(self):
        return self.divider.sh2

    @property
    def n_stages(self):
        """ Get the number of stages in the pipeline. """
        return 2


class ConstDivCoreInputData:
    """ input data type for ``ConstDivCore``.

    :attribute core_config: ``ConstDivCoreConfig`` instance describing the
        configuration to be used.
    :attribute dividend: dividend. Signal with a bit-width of
        ``core_config.bit_width``.
    """

    def __init__(self, core_config, reset_less=True):
        """ Create a ``ConstDivCoreInputData`` instance. """
        self.core_config = core_config
        bw = core_config.bit_width
        self.dividend = Signal(bw, reset_less=reset_less)

    def __iter__(self):
        """ Get member signals. """
        yield self.dividend

    def eq(self, rhs):
        """ Assign member signals. """
        return [self.dividend.eq(rhs.dividend)]


class ConstDivCoreInterstageData:
    """ interstage data type for ``ConstDivCore``.

    :attribute core_config: ``ConstDivCoreConfig`` instance describing the
        configuration to be used.
    :attribute dividend: dividend. Signal with a bit-width of
        ``core_config.bit_width``.
    :attribute prod_upper_half: the upper half of
        ``dividend * multiplier``. Signal with a bit-width of
        ``core_config.bit_width``.
    """

    def __init__(self, core_config, reset_less=True):
        """ Create a ``ConstDivCoreInterstageData`` instance. """
        self.core_config = core_config
        bw = core_config.bit_width
        self.dividend = Signal(bw, reset_less=reset_less)
        self.prod_upper_half = Signal(bw, reset_less=reset_less)

    def __iter__(self):
        """ Get member signals. """
        yield self.dividend
        yield self.prod_upper_half

    def eq(self, rhs):
        """ Assign member signals. """
        return [self.dividend.eq(rhs.dividend),
                self.prod_upper_half.eq(rhs.prod_upper_half)]


class ConstDivCoreOutputData:
    """ output data type for ``ConstDivCore``.

    :attribute core_config: ``ConstDivCoreConfig`` instance describing the
        configuration to be used.
    :attribute quotient: the quotient. Signal with a bit-width of
        ``core_config.bit_width``.
    :attribute remainder: the remainder. Signal with a bit-width of
        ``core_config.bit_width``.
    """

    def __init__(self, core_config, reset_less=True):
        """ Create a ``ConstDivCoreOutputData`` instance. """
        self.core_config = core_config
        bw = core_config.bit_width
        self.quotient = Signal(bw, reset_less=reset_less)
        self.remainder = Signal(bw, reset_less=reset_less)

    def __iter__(self):
        """ Get member signals. """
        yield self.quotient
        yield self.remainder

    def eq(self, rhs):
        """ Assign member signals. """
        return [self.quotient.eq(rhs.quotient),
                self.remainder.eq(rhs.remainder)]


class ConstDivCoreMulHiStage(Elaboratable):
    """ Multiply-High Stage of the core of the divide-by-constant pipeline.
    """

    def __init__(self, core_config):
        """ Create a ``ConstDivCoreMulHiStage`` instance."""
        self.core_config = core_config
        self.i = self.ispec()
        self.o = self.ospec()

    def ispec(self):
        """ Get the input spec for this pipeline stage."""
        return ConstDivCoreInputData(self.core_config)

    def ospec(self):
        """ Get the output spec for this pipeline stage."""
        return ConstDivCoreInterstageData(self.core_config)

    def setup(self, m, i):
        """ Pipeline stage setup. """
        m.submodules.const_div_core_mul_hi = self
        m.d.comb += self.i.eq(i)

    def process(self, i):
        """ Pipeline stage process. """
        return self.o  # return processed data (ignore i)

    def elaborate(self, platform):
        """ Elaborate into ``Module``. """
        m = Module()
        comb = m.d.comb

        bw = self.core_config.bit_width
        multiplier = Const(self.core_config.multiplier, bw)

        product = Signal(bw * 2, reset_less=True)
        comb += product.eq(self.i.dividend * multiplier)

        comb += self.o.dividend.eq(self.i.dividend)
        comb += self.o.prod_upper_half.eq(product[bw:])

        return m


class ConstDivCoreFinalStage(Elaboratable):
    """ Final Stage of the core of the divide-by-constant pipeline. """

    def __init__(self, core_config):
        """ Create a ``ConstDivCoreFinalStage`` instance."""
        self.core_config = core_config
        self.i = self.ispec()
        self.o = self.ospec()

    def ispec(self):
        """ Get the input spec for this pipeline stage."""
        return ConstDivCoreInterstageData(self.core_config)

    def ospec(self):
        """ Get the output spec for this pipeline stage."""
        return ConstDivCoreOutputData(self.core_config)

    def setup(self, m, i):
        """ Pipeline stage setup. """
        m.submodules.const_div_core_final = self
        m.d.comb += self.i.eq(i)

    def process(self, i):
        """ Pipeline stage process. """
        return self.o  # return processed data (ignore i)

    def elaborate(self, platform):
        """ Elaborate into ``Module``. """
        m = Module()
        comb = m.d.comb

        bw = self.core_config.bit_width
        sh1 = self.core_config.sh1
        sh2 = self.core_config.sh2
        divisor = Const(self.core_config.divisor, bw)

        dividend = self.i.dividend
        hi = self.i.prod_upper_half

        # hi <= dividend since multiplier < 2 ** bw
        correction = Signal(bw, reset_less=True)
        comb += correction.eq((dividend - hi)[:bw] >> sh1)

        quotient = Signal(bw, reset_less=True)
        comb += quotient.eq((hi + correction) >> sh2)

        quotient_times_divisor = Signal(bw * 2, reset_less=True)
        comb += quotient_times_divisor.eq(quotient * divisor)

        comb += self.o.quotient.eq(quotient)
        comb += self.o.remainder.eq(dividend - quotient_times_divisor)

        return m
