#!/usr/bin/env python
'''
:mod:`image` - Executable image model
=====================================

.. module: image
   :platform: Unix, Windows
   :synopsis: Executable image model


About
-----
This module parses an ELF executable held in memory, using ``pyelftools``, and
exposes what the disassembler needs to know about it:

* The bounds of the primary code section (``.text``), which also bound every
  linear decode run.

* The program's entry point.

* The raw bytes backing a virtual address, located through the section table
  and, failing that, through the ``PT_LOAD`` segments.

Only IA-32 and AMD64 executables are accepted.


Classes
-------
'''

import io

from elftools.common.exceptions import ELFError
from elftools.elf.constants import SH_FLAGS
from elftools.elf.elffile import ELFFile


# Name of the section holding the program's code.
CODE_SECTION_NAME = '.text'


class MalformedImageError(Exception):
    '''Raised when the input is not a valid IA-32 or AMD64 ELF executable.'''
    pass


class Section(object):
    '''
    Represents a section of the executable image.

    .. automethod:: __init__
    '''

    def __init__(self, name, start_address, size, offset, data_backed):
        '''
        :param name: Section name.
        :param start_address: Virtual address of the section's first byte.
        :param size: Section size in bytes.
        :param offset: File offset of the section's contents.
        :param data_backed: ``True`` if the section's contents are present in
            the file (i.e. it's not ``SHT_NOBITS``) and loaded at run time.
        '''
        self.name = name
        self.start_address = start_address
        self.end_address = start_address + size
        self.size = size
        self.offset = offset
        self.data_backed = data_backed

    def __str__(self):
        return '<Section %s 0x%x-0x%x>' % (self.name, self.start_address,
            self.end_address)

    def __contains__(self, address):
        return self.start_address <= address < self.end_address


class Image(object):
    '''
    An executable image loaded from a byte buffer. Built once and never
    mutated.

    .. automethod:: __init__
    '''

    def __init__(self, data):
        '''
        :param data: The raw bytes of the ELF executable.
        :raises MalformedImageError: Raised when *data* is not a structurally
            valid IA-32 or AMD64 ELF executable.
        '''

        self.data = bytes(data)

        # `pyelftools' parses lazily, so everything we'll ever need is read
        # here. Out of range header offsets surface as `OverflowError' from
        # seeking and bad table indices as `IndexError'.
        try:
            elf = ELFFile(io.BytesIO(self.data))

            machine = elf.header['e_machine']
            if machine == 'EM_X86_64':
                self.arch = 'x86_64'
            elif machine == 'EM_386':
                self.arch = 'i386'
            else:
                raise MalformedImageError('Unsupported machine "%s"' % machine)

            self._entry_point = elf.header['e_entry']

            self._sections = []
            for section in elf.iter_sections():
                self._sections.append(Section(section.name,
                    section['sh_addr'], section['sh_size'],
                    section['sh_offset'],
                    section['sh_type'] != 'SHT_NOBITS' and
                    bool(section['sh_flags'] & SH_FLAGS.SHF_ALLOC)))

            self._segments = []
            for segment in elf.iter_segments():
                if segment['p_type'] == 'PT_LOAD':
                    self._segments.append((segment['p_vaddr'],
                        segment['p_filesz'], segment['p_offset']))

        except (ELFError, ValueError, OverflowError, IndexError) as e:
            raise MalformedImageError('Malformed ELF image: %s' % e)

        self.min_insn_addr = 0
        self.max_insn_addr = 0
        for section in self._sections:
            if section.name == CODE_SECTION_NAME:
                self.min_insn_addr = section.start_address
                self.max_insn_addr = section.end_address
                break

    def __str__(self):
        return '<Image %s entry 0x%x code 0x%x-0x%x>' % (self.arch,
            self._entry_point, self.min_insn_addr, self.max_insn_addr)


    def code_bounds(self):
        '''
        Get the address range of the primary code section. The range is
        ``(0, 0)`` when the image has no such section.

        :returns: A ``(min, max)`` tuple, *max* being exclusive.
        :rtype: ``tuple``
        '''
        return (self.min_insn_addr, self.max_insn_addr)


    def has_code_bounds(self):
        '''``True`` unless the code bounds are degenerate.'''
        return self.min_insn_addr < self.max_insn_addr


    def in_code_region(self, address):
        '''
        Check if *address* lies in the primary code section. Any address is
        accepted when the code bounds are degenerate.

        :param address: Address to check.
        :returns: ``True`` if *address* may hold an instruction.
        :rtype: ``bool``
        '''
        return not self.has_code_bounds() or \
            self.min_insn_addr <= address < self.max_insn_addr


    def entry_point(self):
        '''Get the program's entry point address.'''
        return self._entry_point


    def sections(self):
        '''
        Get the image's sections, in section table order.

        :returns: List of sections.
        :rtype: ``list`` of :class:`Section`
        '''
        return list(self._sections)


    def get_file_offset(self, address):
        '''
        Translate virtual address *address* to a file offset.

        :param address: Address to translate.
        :returns: The file offset of *address* or ``None`` if no data in the
            file backs it.
        :rtype: ``int``
        '''

        r = None

        for section in self._sections:
            if section.data_backed and address in section:
                r = section.offset + address - section.start_address
                break
        else:
            for start_address, size, offset in self._segments:
                if start_address <= address < start_address + size:
                    r = offset + address - start_address
                    break

        if r is not None and r >= len(self.data):
            r = None
        return r


    def bytes_from(self, address, size=None):
        '''
        Read the raw bytes starting at *address* through the end of the buffer.

        :param address: Address to start reading from.
        :param size: If given, read at most this many bytes.
        :returns: The bytes starting at *address*, possibly empty.
        :rtype: ``bytes``
        '''

        offset = self.get_file_offset(address)
        if offset is None:
            return b''

        if size is None:
            return self.data[offset:]
        return self.data[offset:offset + size]


def load(data):
    '''
    Parse an executable image.

    :param data: The raw bytes of the ELF executable.
    :returns: The parsed image.
    :rtype: :class:`Image`
    :raises MalformedImageError: Raised when *data* is not a valid image.
    '''
    return Image(data)
