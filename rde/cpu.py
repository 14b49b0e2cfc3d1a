#!/usr/bin/env python
'''
:mod:`cpu` - Definitions for IA-32 and AMD64 CPUs
=================================================

.. module: cpu
   :platform: Unix, Windows
   :synopsis: Definitions for IA-32 and AMD64 CPUs


About
-----
Exports class :class:`CPU` which provides a simple abstraction layer over the
various CPU configurations and owns the ``capstone`` decoding engine configured
for each of them.


Classes
-------
'''

import capstone

from rde import instruction


X86_MODE_REAL = 1
X86_MODE_PROTECTED_32BIT = 2
X86_MODE_PROTECTED_64BIT = 3


# Longest possible x86 instruction, in bytes.
MAX_INSTRUCTION_LENGTH = 15


class DecodeError(Exception):
    '''Raised when the decoding engine cannot be initialized.'''
    pass


class CPU(object):
    '''
    Represents an IA-32 or AMD64 CPU.

    .. automethod:: __init__
    '''

    def __init__(self, mode=X86_MODE_PROTECTED_64BIT):
        '''
        :param mode: Mode of the instantiated CPU. May be :data:`X86_MODE_REAL`,
            :data:`X86_MODE_PROTECTED_32BIT` or :data:`X86_MODE_PROTECTED_64BIT`.
        :raises DecodeError: Raised when the ``capstone`` engine can't be
            created for *mode*.
        '''

        cs_mode_map = {
            X86_MODE_REAL: capstone.CS_MODE_16,
            X86_MODE_PROTECTED_32BIT: capstone.CS_MODE_32,
            X86_MODE_PROTECTED_64BIT: capstone.CS_MODE_64
        }

        if mode not in cs_mode_map:
            raise DecodeError('Unknown CPU mode %r' % (mode, ))

        self.mode = mode

        # Operand details are needed to classify branches and read their
        # immediate targets.
        try:
            self.engine = capstone.Cs(capstone.CS_ARCH_X86, cs_mode_map[mode])
            self.engine.detail = True
        except capstone.CsError as e:
            raise DecodeError('Could not create the capstone engine: %s' % e)

    def __str__(self):
        name = '?'
        if self.mode == X86_MODE_REAL:
            name = 'X86_MODE_REAL'
        elif self.mode == X86_MODE_PROTECTED_32BIT:
            name = 'X86_MODE_PROTECTED_32BIT'
        elif self.mode == X86_MODE_PROTECTED_64BIT:
            name = 'X86_MODE_PROTECTED_64BIT'
        return '<CPU %s>' % name


    @classmethod
    def for_arch(cls, arch):
        '''
        Instantiate the CPU matching an image architecture name.

        :param arch: Architecture name, either ``'i386'`` or ``'x86_64'``.
        :returns: A new CPU object.
        :rtype: :class:`CPU`
        :raises DecodeError: Raised for unsupported architectures.
        '''

        arch_map = {
            'i386': X86_MODE_PROTECTED_32BIT,
            'x86_64': X86_MODE_PROTECTED_64BIT
        }

        if arch not in arch_map:
            raise DecodeError('Unsupported architecture "%s"' % arch)
        return cls(arch_map[arch])


    def get_address_width(self):
        '''
        Get the native address width given the current CPU mode.

        :returns: Address width in bits.
        :rtype: ``int``
        '''

        width_map = {
            X86_MODE_REAL: 16,
            X86_MODE_PROTECTED_32BIT: 32,
            X86_MODE_PROTECTED_64BIT: 64
        }
        return width_map[self.mode]


    def get_address_mask(self):
        '''Mask that truncates a value to the native address width.'''
        return (1 << self.get_address_width()) - 1


    def decode(self, code, address):
        '''
        Lazily decode the instruction stream in *code*, the first byte of which
        lives at *address*. Decoding stops silently at the first byte sequence
        that is not a valid instruction.

        :param code: Raw bytes to decode.
        :param address: Address of the first byte of *code*.
        :returns: Generator of :class:`instruction.Instruction` objects in
            increasing address order.
        :rtype: ``generator``
        '''
        for insn in self.engine.disasm(code, address):
            yield instruction.Instruction(insn, self)
