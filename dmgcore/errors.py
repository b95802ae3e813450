"""Exceptions raised by the emulator core."""


class EmulatorError(Exception):
    """Base class for every error the emulator raises."""


class UnknownOpcodeError(EmulatorError):
    """Raised when the CPU fetches an opcode it cannot decode."""

    def __init__(self, opcode: int, address: int | None = None, prefixed: bool = False) -> None:
        self.opcode = opcode
        self.address = address
        self.prefixed = prefixed
        prefix = "CB " if prefixed else ""
        where = f" at {address:#06x}" if address is not None else ""
        super().__init__(f"unknown opcode {prefix}{opcode:#04x}{where}")


class InvalidInterruptError(EmulatorError):
    """Raised when an interrupt signal has no handler vector."""

    def __init__(self, signal: int) -> None:
        self.signal = signal
        super().__init__(f"invalid interrupt signal {signal}")