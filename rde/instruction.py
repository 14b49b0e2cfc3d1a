#!/usr/bin/env python
'''
:mod:`instruction` - Wrapper class for disassembled instructions
================================================================

.. module: instruction
   :platform: Unix, Windows
   :synopsis: Wrapper class for disassembled instructions


About
-----
This module defines a class that wraps a ``capstone.CsInsn`` instance and
provides higher level methods. We actually use the *delegate* design pattern to
forward method calls to the wrapped ``capstone.CsInsn`` object.

Each instruction belongs to exactly one control flow class:

* :data:`CF_NONE` -- Execution simply falls through to the next instruction.

* :data:`CF_JUMP` -- Conditional or unconditional jump.

* :data:`CF_CALL` -- Near or far call.

* :data:`CF_OTHER` -- Any other control transfer (returns, interrupts and
  interrupt returns). These never contribute exploration targets.


Classes
-------
'''

import capstone
from capstone import x86


CF_NONE = 0
CF_JUMP = 1
CF_CALL = 2
CF_OTHER = 3


class Instruction(object):
    '''
    Wraps a ``capstone.CsInsn`` object to offer more functionality. Implements
    the *delegate* design pattern.

    .. automethod:: __init__
    .. automethod:: __getattr__
    '''

    def __init__(self, instruction, cpu):
        '''
        :param instruction: The ``capstone.CsInsn`` instance to be wrapped.
        :param cpu: The :class:`cpu.CPU` instance corresponding to the CPU that
            has decoded instruction *instruction*.
        '''

        # Wrapped delegate `capstone.CsInsn' object should be private.
        self._instruction = instruction

        # We also need this for private purposes.
        self._cpu = cpu


    def __getattr__(self, name):
        '''
        When an attribute is not found here, look for it in ``capstone.CsInsn``.
        This function is the actual delegation link.
        '''
        return getattr(self._instruction, name)

    def __str__(self):
        return '<Instruction 0x%x>' % self.address

    def __hash__(self):
        return self.address


    def get_length(self):
        '''
        Get the number of bytes this instruction is encoded in.

        :returns: Encoded instruction length.
        :rtype: ``int``
        '''
        return self._instruction.size


    def get_next_instruction_address(self):
        '''
        Get the absolute address of the instruction immediately following the
        current one.

        :returns: Next instruction's absolute address.
        :rtype: ``int``
        '''
        return self.address + self.get_length()


    def get_text(self):
        '''
        Get the human readable form of this instruction, that is its address
        followed by its mnemonic and operands, e.g. ``0x401000: jmp 0x40100a``.

        :returns: Rendered instruction.
        :rtype: ``str``
        '''

        text = '%#x: %s' % (self.address, self.mnemonic)
        if self.op_str:
            text += ' %s' % self.op_str
        return text


    def get_control_flow_class(self):
        '''
        Classify this instruction according to the way it transfers control.

        :returns: One of :data:`CF_NONE`, :data:`CF_JUMP`, :data:`CF_CALL` or
            :data:`CF_OTHER`.
        :rtype: ``int``
        '''

        cf_class = CF_NONE
        if self.group(capstone.CS_GRP_JUMP):
            cf_class = CF_JUMP
        elif self.group(capstone.CS_GRP_CALL):
            cf_class = CF_CALL
        elif self.group(capstone.CS_GRP_RET) or \
                self.group(capstone.CS_GRP_IRET) or \
                self.group(capstone.CS_GRP_INT):
            cf_class = CF_OTHER
        return cf_class


    def get_branch_target(self):
        '''
        Compute the absolute branch target of this instruction. This, of course,
        makes sense only if the current instruction is a direct jump or call;
        the target is its first immediate operand, truncated to the native
        address width.

        :returns: The absolute branch target or ``None``.
        :rtype: ``int``
        '''

        r = None
        if self.get_control_flow_class() in [CF_JUMP, CF_CALL]:
            for operand in self.operands:
                if operand.type == x86.X86_OP_IMM:
                    r = operand.imm & self._cpu.get_address_mask()
                    break
        return r
