"""Address space with cartridge bank switching."""

from __future__ import annotations

import enum

MAX_ROM_SIZE = 0x200000
RAM_BANK_SIZE = 0x8000
ROM_BANK_WINDOW = 0x4000
RAM_BANK_WINDOW = 0x2000
CARTRIDGE_TYPE_ADDR = 0x147

_POWER_UP_IO = {
    0xFF05: 0x00,
    0xFF06: 0x00,
    0xFF07: 0x00,
    0xFF10: 0x80,
    0xFF11: 0xBF,
    0xFF12: 0xF3,
    0xFF14: 0xBF,
    0xFF16: 0x3F,
    0xFF17: 0x00,
    0xFF19: 0xBF,
    0xFF1A: 0x7F,
    0xFF1B: 0xFF,
    0xFF1C: 0x9F,
    0xFF1E: 0xBF,
    0xFF20: 0xFF,
    0xFF21: 0x00,
    0xFF22: 0x00,
    0xFF23: 0xBF,
    0xFF24: 0x77,
    0xFF25: 0xF3,
    0xFF26: 0xF1,
    0xFF40: 0x91,
    0xFF42: 0x00,
    0xFF43: 0x00,
    0xFF45: 0x00,
    0xFF47: 0xFC,
    0xFF48: 0xFF,
    0xFF49: 0xFF,
    0xFF4A: 0x00,
    0xFF4B: 0x00,
    0xFFFF: 0x00,
}


class BankController(enum.Enum):
    """Memory bank controller found in the cartridge header."""

    NONE = "none"
    MBC1 = "mbc1"
    MBC2 = "mbc2"

    @classmethod
    def from_cartridge_type(cls, code: int) -> BankController:
        if code in (1, 2, 3):
            return cls.MBC1
        if code in (5, 6):
            return cls.MBC2
        return cls.NONE


class MemoryBus:
    """The flat address space backed by the cartridge image, plus banked RAM."""

    def __init__(self, rom: bytes | bytearray) -> None:
        if len(rom) > MAX_ROM_SIZE:
            raise ValueError(f"ROM image of {len(rom)} bytes exceeds {MAX_ROM_SIZE} bytes")
        self.memory = bytearray(MAX_ROM_SIZE)
        self.memory[: len(rom)] = rom
        for addr, value in _POWER_UP_IO.items():
            self.memory[addr] = value
        self.ram = bytearray(RAM_BANK_SIZE)
        self.controller = BankController.from_cartridge_type(self.memory[CARTRIDGE_TYPE_ADDR])
        self.rom_bank = 1
        self.ram_bank = 0
        self.ram_enabled = False
        self.rom_banking = True

    @property
    def _banked(self) -> bool:
        return self.controller is not BankController.NONE

    def read(self, addr: int) -> int:
        """Read one byte, resolving the switchable ROM and RAM windows."""
        addr &= 0xFFFF
        if 0x4000 <= addr <= 0x7FFF:
            return self.memory[(addr - 0x4000) + self.rom_bank * ROM_BANK_WINDOW]
        if 0xA000 <= addr <= 0xBFFF:
            return self.ram[(addr - 0xA000) + self.ram_bank * RAM_BANK_WINDOW]
        return self.memory[addr]

    def write(self, addr: int, data: int) -> None:
        """Write one byte; writes into ROM space drive the bank controller."""
        addr &= 0xFFFF
        data &= 0xFF
        if addr < 0x8000:
            self._bank(addr, data)
        elif 0xA000 <= addr < 0xC000 and self.ram_enabled:
            self.ram[(addr - 0xA000) + self.ram_bank * RAM_BANK_WINDOW] = data
        elif 0xE000 <= addr < 0xFE00:
            self.memory[addr] = data
            self.write(addr - 0x2000, data)
        elif not 0xFEA0 <= addr < 0xFEFF:
            self.memory[addr] = data

    def _bank(self, addr: int, data: int) -> None:
        mbc1 = self.controller is BankController.MBC1
        mbc2 = self.controller is BankController.MBC2
        if addr < 0x2000 and self._banked:
            if mbc2 and addr & 0x10:
                return
            if data & 0xF == 0xA:
                self.ram_enabled = True
            elif data & 0xF == 0x0:
                self.ram_enabled = False
        elif 0x2000 <= addr < 0x4000 and self._banked:
            if mbc2:
                bank = data & 0xF
            else:
                bank = (self.rom_bank & 0xE0) | (data & 0x1F)
            self.rom_bank = bank or 1
        elif 0x4000 <= addr < 0x6000 and mbc1:
            if self.rom_banking:
                self.rom_bank = ((self.rom_bank & 0x1F) | (data & 0xE0)) or 1
            else:
                self.ram_bank = data & 3
        elif 0x6000 <= addr < 0x8000 and mbc1:
            self.rom_banking = not data & 0x1
            if self.rom_banking:
                self.ram_bank = 0