"""
Shared fixtures: a minimal ELF64 builder and a table driven fake CPU.

The ELF images hold a single PT_LOAD segment mapping the whole file at
BASE_ADDRESS, a code section at TEXT_ADDRESS and a section name string table.
"""
import struct

import pytest

from rde.instruction import CF_NONE, CF_JUMP, CF_CALL


BASE_ADDRESS = 0x400000
TEXT_OFFSET = 0x1000
TEXT_ADDRESS = BASE_ADDRESS + TEXT_OFFSET

EM_X86_64 = 62
EM_ARM = 40


def make_elf(code, entry=TEXT_ADDRESS, text_name='.text', machine=EM_X86_64,
             trailer=b''):
    """Build an ELF64 executable whose code section holds `code`.

    `trailer` bytes follow the code section in the file but belong to no
    section.
    """
    shstrtab = b'\x00' + text_name.encode() + b'\x00.shstrtab\x00'
    text_name_offset = 1
    shstrtab_name_offset = len(text_name) + 2

    strtab_offset = TEXT_OFFSET + len(code) + len(trailer)
    shoff = (strtab_offset + len(shstrtab) + 7) & ~7
    file_size = shoff + 3 * 64

    ident = b'\x7fELF' + bytes([2, 1, 1, 0]) + b'\x00' * 8
    ehdr = ident + struct.pack('<HHIQQQIHHHHHH', 2, machine, 1, entry, 64,
                               shoff, 0, 64, 56, 1, 64, 3, 2)
    phdr = struct.pack('<IIQQQQQQ', 1, 5, 0, BASE_ADDRESS, BASE_ADDRESS,
                       file_size, file_size, 0x1000)

    data = ehdr + phdr
    data += b'\x00' * (TEXT_OFFSET - len(data))
    data += code + trailer + shstrtab
    data += b'\x00' * (shoff - len(data))

    data += b'\x00' * 64
    data += struct.pack('<IIQQQQIIQQ', text_name_offset, 1, 6, TEXT_ADDRESS,
                        TEXT_OFFSET, len(code), 0, 0, 16, 0)
    data += struct.pack('<IIQQQQIIQQ', shstrtab_name_offset, 3, 0, 0,
                        strtab_offset, len(shstrtab), 0, 0, 1, 0)
    assert len(data) == file_size
    return data


class FakeInstruction:
    """Stands in for rde.instruction.Instruction."""

    def __init__(self, address, length, mnemonic, cf_class=CF_NONE, target=None):
        self.address = address
        self.length = length
        self.mnemonic = mnemonic
        self.cf_class = cf_class
        self.target = target

    def get_length(self):
        return self.length

    def get_next_instruction_address(self):
        return self.address + self.length

    def get_text(self):
        return '%#x: %s' % (self.address, self.mnemonic)

    def get_control_flow_class(self):
        return self.cf_class

    def get_branch_target(self):
        if self.cf_class in (CF_JUMP, CF_CALL):
            return self.target
        return None


class FakeCPU:
    """Decodes from a table of address -> (length, mnemonic, class, target).

    Decoding walks the table from the start address and stops at the first
    address with no entry, like an engine hitting invalid bytes.
    """

    def __init__(self, program):
        self.program = program
        self.decoded_from = []

    def decode(self, code, address):
        self.decoded_from.append(address)
        while address in self.program:
            length, mnemonic, cf_class, target = self.program[address]
            yield FakeInstruction(address, length, mnemonic, cf_class, target)
            address += length


class FakeImage:
    arch = 'x86_64'

    def __init__(self, entry=0x1000, bounds=(0x1000, 0x1100)):
        self._entry = entry
        self._bounds = bounds

    def code_bounds(self):
        return self._bounds

    def has_code_bounds(self):
        return self._bounds[0] < self._bounds[1]

    def in_code_region(self, address):
        return not self.has_code_bounds() or \
            self._bounds[0] <= address < self._bounds[1]

    def entry_point(self):
        return self._entry

    def bytes_from(self, address, size=None):
        return b''


def nop(length=1):
    return (length, 'nop', CF_NONE, None)


def ret():
    return (1, 'ret', CF_NONE, None)


def jmp(target, length=2):
    return (length, 'jmp %#x' % target, CF_JUMP, target)


def call(target, length=5):
    return (length, 'call %#x' % target, CF_CALL, target)


@pytest.fixture
def elf_file(tmp_path):
    """Write an ELF image to disk and return its path."""
    def _write(code, **kwargs):
        path = tmp_path / 'a.out'
        path.write_bytes(make_elf(code, **kwargs))
        return path
    return _write
