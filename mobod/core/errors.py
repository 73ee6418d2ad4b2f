# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.


class MobodError(Exception):
    """Base class of the errors raised by mobod"""


class StageViolation(MobodError, RuntimeError):
    """A cached quantity was read, or a stage realized, out of stage order"""

    def __init__(self, required, current, what: str = "") -> None:
        self.required = required
        self.current = current
        msg = f"requires stage {required.name} but the state is at {current.name}"
        super().__init__(f"{what} {msg}" if what else f"State {msg}")


class TopologyError(MobodError, ValueError):
    """The body tree structure is invalid or was edited inconsistently"""


class IndexOutOfRange(MobodError, IndexError):
    """A mobility index lies outside the mobilizer's dof count"""

    def __init__(self, which: int, size: int, what: str = "index") -> None:
        self.which = which
        self.size = size
        super().__init__(f"{what} {which} out of range [0, {size})")


class NotAvailableError(MobodError, NotImplementedError):
    """The requested derived quantity is not available"""
