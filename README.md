# dmgcore

An 8-bit handheld-console CPU core in pure Python, with no dependencies
outside the standard library.

## What is in the package

- `dmgcore.memory`: `MemoryBus` holds the address space. It is built from a
  cartridge image of at most `0x200000` bytes. It switches ROM and RAM banks for
  MBC1 and MBC2 cartridges, mirrors echo RAM and ignores writes to the unusable
  region. `BankController` names the controller read from the cartridge header.
- `dmgcore.registers`: `Flag` holds the Z, N, H and C bits of the flag
  register. `RegisterPair` is a 16-bit register with `word`, `high` and `low`
  views.
- `dmgcore.cpu`: `CPU` holds the register file, decodes and executes
  instructions, and handles interrupts.
- `dmgcore.cb`: `execute_cb(cpu, opcode)` runs one `0xCB`-prefixed rotate,
  shift or bit instruction.
- `dmgcore.lcd`: `LCD` counts scanline timing and keeps the LCD status register
  (`0xFF41`) and the current line (`0xFF44`) up to date.
- `dmgcore.main`: `load_rom`, `run` and the `dmgcore` command.
- `dmgcore.errors`: `EmulatorError` and its subclasses `UnknownOpcodeError` and
  `InvalidInterruptError`.

## Installation

```
pip install .
```

## Command line

```
dmgcore path/to/game.gb
```

The command prints `loading rom`, loads the image, prints `starting`, and then
runs the CPU for 10 frames of at least 10 cycles each, paced to 60 frames per
second. It exits with status 0 when that is done. It exits with status 1 and a
message on standard error in these cases: the argument count is wrong, the file
cannot be read, or the CPU meets an opcode it does not implement.

## Library use

```python
from dmgcore.cpu import CPU
from dmgcore.main import load_rom, run

cpu = CPU(load_rom("game.gb"))

cycles = cpu.step()         # execute one instruction, return its cycle count
value = cpu.read_mem(0xFF40)
cpu.write_mem(0xC000, 0x42)
cpu.interrupt(0)            # request a V-blank interrupt
cpu.check_interrupts()      # service requested, enabled interrupts when IME is on

total = run(cpu, frames=10, cycles_per_frame=10, fps=60)
```

Registers are available as `cpu.af`, `cpu.bc`, `cpu.de`, `cpu.hl`, `cpu.sp` and
`cpu.pc` (each a `RegisterPair`). Their halves are available as `cpu.a`,
`cpu.f`, `cpu.b`, `cpu.c`, `cpu.d`, `cpu.e`, `cpu.h` and `cpu.l`.
`cpu.read_r8(index)` and `cpu.write_r8(index, value)` use the instruction
encoding B, C, D, E, H, L, (HL), A.

To drive the LCD timing, pass it any object with a `draw(cpu)` method:

```python
from dmgcore.lcd import LCD

lcd = LCD()
lcd.update(cpu, renderer, cycles)   # advance the scanline counter
lcd.set_mode(cpu)                   # refresh status mode and coincidence bits
```

`update` calls `renderer.draw(cpu)` for each visible line, and it requests
interrupt 0 when line 144 is reached. `set_mode` requests interrupt 1 when the
status register enables it.

## Errors

- An opcode the core does not implement raises
  `dmgcore.errors.UnknownOpcodeError`.
- Servicing an interrupt number that has no handler address raises
  `dmgcore.errors.InvalidInterruptError`.
- Both errors derive from `dmgcore.errors.EmulatorError`.
- A cartridge image larger than `0x200000` bytes raises `ValueError`.

## What it does not do

The package does not draw pixels, play sound or read input. There is no
renderer to pass to `LCD.update`, so you must supply your own. The command does
not call the LCD at all. It only executes instructions for a fixed short run and
shows nothing while it does so.

## Tests

```
pip install .[test]
pytest
```