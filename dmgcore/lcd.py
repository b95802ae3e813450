"""LCD controller timing: scanline counting, status modes and LCD interrupts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .cpu import CPU

LCDC_ADDR = 0xFF40
STAT_ADDR = 0xFF41
LY_ADDR = 0xFF44
LYC_ADDR = 0xFF45

SCANLINE_CYCLES = 456
OAM_SCAN_CYCLES = 80
PIXEL_TRANSFER_CYCLES = 172
VBLANK_LINE = 144
LINES_PER_FRAME = 154

LCD_ENABLE_BIT = 0x80

VBLANK_INTERRUPT = 0
LCD_STAT_INTERRUPT = 1

MODE_MASK = 0b11
COINCIDENCE_FLAG = 0b100
HBLANK_INTERRUPT_ENABLE = 0b100
VBLANK_INTERRUPT_ENABLE = 0b1000
OAM_INTERRUPT_ENABLE = 0b10000
COINCIDENCE_INTERRUPT_ENABLE = 0b01000000


class PixelProcessor(Protocol):
    """Anything that can render the current scanline."""

    def draw(self, cpu: CPU) -> None: ...


def _lcd_enabled(cpu: CPU) -> bool:
    return bool(cpu.read_mem(LCDC_ADDR) & LCD_ENABLE_BIT)


@dataclass
class LCD:
    """Tracks the position within a scanline and drives the LCD registers."""

    scanline_counter: int = SCANLINE_CYCLES

    def update(self, cpu: CPU, ppu: PixelProcessor, cycles: int) -> None:
        """Advance the scanline counter by ``cycles`` and move to the next line when due."""
        if not _lcd_enabled(cpu):
            return
        self.scanline_counter -= cycles
        if self.scanline_counter > 0:
            return
        self.scanline_counter = SCANLINE_CYCLES
        cpu.write_mem(LY_ADDR, cpu.read_mem(LY_ADDR) + 1)
        line = cpu.read_mem(LY_ADDR)
        if line < VBLANK_LINE:
            ppu.draw(cpu)
        elif line == VBLANK_LINE:
            cpu.interrupt(VBLANK_INTERRUPT)
        elif line >= LINES_PER_FRAME:
            cpu.write_mem(LY_ADDR, 0)

    def set_mode(self, cpu: CPU) -> None:
        """Update the status register's mode and coincidence bits, raising STAT interrupts."""
        status = cpu.read_mem(STAT_ADDR)
        if not _lcd_enabled(cpu):
            self.scanline_counter = SCANLINE_CYCLES
            cpu.write_mem(LY_ADDR, 0)
            cpu.write_mem(STAT_ADDR, status & 0b11111101)
            return

        line = cpu.read_mem(LY_ADDR)
        current_mode = status & MODE_MASK
        mode_changed = False
        if line >= VBLANK_LINE:
            mode_changed = bool(status & VBLANK_INTERRUPT_ENABLE) and current_mode != 1
            status = (status & 0b11111101) | 0b01
        elif self.scanline_counter >= SCANLINE_CYCLES - OAM_SCAN_CYCLES:
            mode_changed = bool(status & OAM_INTERRUPT_ENABLE) and current_mode != 2
            status = (status & 0b11111110) | 0b10
        elif self.scanline_counter >= SCANLINE_CYCLES - OAM_SCAN_CYCLES - PIXEL_TRANSFER_CYCLES:
            status |= 0b11
        else:
            mode_changed = bool(status & HBLANK_INTERRUPT_ENABLE) and current_mode != 0
            status &= 0b11111100

        if mode_changed:
            cpu.interrupt(LCD_STAT_INTERRUPT)

        if line == cpu.read_mem(LYC_ADDR):
            status |= COINCIDENCE_FLAG
            if status & COINCIDENCE_INTERRUPT_ENABLE:
                cpu.interrupt(LCD_STAT_INTERRUPT)
        else:
            status &= ~COINCIDENCE_FLAG & 0xFF
        cpu.write_mem(STAT_ADDR, status)