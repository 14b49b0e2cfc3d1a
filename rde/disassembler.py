#!/usr/bin/env python
'''
:mod:`disassembler` - Main class for disassembling executable images
====================================================================

.. module: disassembler
   :platform: Unix, Windows
   :synopsis: Main class for disassembling executable images


About
-----
This is the class responsible for discovering and decoding every instruction
reachable from an executable's entry point. Exploration is driven by a stack
of addresses, the *worklist*, and by the following state:

* **targets** -- A ``sortedcontainers.SortedSet`` of *confirmed targets*, the
  addresses at which a linear decode run starts. Apart from its own start, a
  run never crosses a confirmed target; it stops at the first one that follows
  its start (or at the end of the code section).

* **instructions** -- A ``sortedcontainers.SortedDict`` mapping addresses to
  :class:`instruction.Instruction` objects. Addresses whose run failed to
  decode anything map to ``None``.

* **runs** -- A ``sortedcontainers.SortedDict`` mapping run start addresses to
  :class:`linear_run.LinearRun` objects.

* **code_xrefs** -- An :class:`xref_graph.XRefGraph` holding fall through
  and direct jump/call edges between instructions.

Each address popped from the worklist is decoded at most once. Direct jump and
call targets discovered during a run are pushed unless they are already known
targets, already pending or already decoded. In the last case the target is
merely remembered as a boundary; its existing decode is kept.

Known limitation: a target landing in the middle of a previously decoded
instruction does not invalidate the earlier decode. Both interpretations are
kept and, for addresses decoded by both, the first one wins. Overlaps are
only reported when debug tracing is enabled.


Classes
-------
'''

import logging

from sortedcontainers import SortedDict, SortedSet

from rde import instruction
from rde import linear_run
from rde import worklist
from rde import xref_graph
from rde.cpu import CPU, MAX_INSTRUCTION_LENGTH


_log = logging.getLogger(__name__)


def _msg(message, *args):
    '''
    Emit a diagnostic trace message. Tracing is purely observational and is
    enabled by setting this module's logger to ``DEBUG``.

    :param message: The message to display, with optional format arguments.
    '''
    _log.debug(message, *args)


class Disassembler(object):
    '''
    Main class that performs control flow directed disassembly.

    .. automethod:: __init__
    .. automethod:: _get_next_target
    .. automethod:: _report_overlaps
    .. automethod:: _consider_branch_target
    .. automethod:: _do_linear_run
    '''

    def __init__(self, image, cpu=None):
        '''
        :param image: The :class:`image.Image` to disassemble.
        :param cpu: The :class:`cpu.CPU` to decode with. By default, one
            matching the image's architecture is instantiated.
        :raises cpu.DecodeError: Raised when the decoding engine can't be
            initialized.
        '''

        self.image = image

        if cpu is None:
            cpu = CPU.for_arch(image.arch)
        self.cpu = cpu

        self.min_insn_addr, self.max_insn_addr = image.code_bounds()
        self.entry_point = image.entry_point()

        self.instructions = SortedDict()
        self.runs = SortedDict()
        self.code_xrefs = xref_graph.XRefGraph()

        # Exploration is seeded with the entry point.
        self.targets = SortedSet([self.entry_point])
        self.worklist = worklist.Worklist([self.entry_point])
        self.code_xrefs.add_node(self.entry_point)

    def __str__(self):
        return '<Disassembler %s %d instructions, %d targets>' % \
            (str(self.cpu), len(self.instructions), len(self.targets))


    def _get_next_target(self, address):
        '''
        Get the boundary a linear run starting at *address* must stop at, that
        is the smallest confirmed target strictly greater than *address*,
        clipped to the end of the code section.

        :param address: Start address of the linear run.
        :returns: The boundary address, or ``None`` if the run is unbounded.
        :rtype: ``int``

        .. warning:: This is a private function, don't use it directly.
        '''

        next_target = None

        i = self.targets.bisect_right(address)
        if i < len(self.targets):
            next_target = self.targets[i]

        if self.min_insn_addr < self.max_insn_addr:
            if next_target is None or next_target > self.max_insn_addr:
                next_target = self.max_insn_addr

        return next_target


    def _report_overlaps(self, target, next_target):
        '''
        Report instructions already decoded between *target* and *next_target*
        that the run about to start from *target* may reinterpret. Nothing is
        invalidated.

        .. warning:: This is a private function, don't use it directly.
        '''
        for address in self.instructions.irange(target, next_target):
            _msg('Previously disassembled something at %#x; however, a new '
                'target may invalidate that', address)


    def _consider_branch_target(self, insn):
        '''
        Examine the direct branch target of jump or call instruction *insn* and
        decide whether it opens a new region to explore.

        :param insn: Instruction object to be analyzed.

        .. warning:: This is a private function, don't use it directly.
        '''

        target = insn.get_branch_target()
        if target is None:
            return

        self.code_xrefs.add_edge((insn.address, target))

        if target in self.targets:
            _msg('%#x is already a found target', target)

        elif target in self.worklist:
            _msg('%#x is already set to be considered', target)

        # Branching to an instruction that is already correctly decoded can't
        # change subsequent decoding. Just remember it as a boundary.
        elif target in self.instructions:
            _msg('%#x matches an instruction', target)
            self.targets.add(target)

        else:
            _msg('Adding %#x as a target to consider', target)
            self.worklist.push(target)


    def _do_linear_run(self, target):
        '''
        Decode linearly from *target* until decoding fails or the next boundary
        is reached, recording every instruction and the branch targets they
        reveal.

        :param target: Address to start decoding from.
        :returns: The run object describing what was decoded.
        :rtype: :class:`linear_run.LinearRun`

        .. warning:: This is a private function, don't use it directly.
        '''

        next_target = self._get_next_target(target)

        if next_target is None:
            _msg('Disassembling from %#x', target)
        else:
            _msg('Disassembling from %#x to %#x', target, next_target)

        self.targets.add(target)

        if _log.isEnabledFor(logging.DEBUG):
            self._report_overlaps(target, next_target)

        # No instruction starting before the boundary extends past this window.
        size = None
        if next_target is not None:
            size = next_target - target + MAX_INSTRUCTION_LENGTH
        code = self.image.bytes_from(target, size)

        addresses = []
        previous = None
        decoded = 0

        for insn in self.cpu.decode(code, target):
            address = insn.address

            # Fall through edges never lead past the boundary.
            if previous is None:
                self.code_xrefs.add_node(address)
            elif previous.get_next_instruction_address() == address and \
                    (next_target is None or address <= next_target):
                self.code_xrefs.add_edge((previous.address, address))

            if next_target is not None and address >= next_target:
                _msg('Stopping disassembly at the next target address')
                break

            decoded += 1

            # First writer wins.
            if address not in self.instructions:
                self.instructions[address] = insn
                addresses.append(address)

            previous = insn

            # A pending target decoded in line needs no run of its own.
            if self.worklist.remove(address):
                _msg('Was going to consider %#x but already disassembled',
                    address)

            if insn.get_control_flow_class() in [instruction.CF_JUMP,
                    instruction.CF_CALL]:
                self._consider_branch_target(insn)

        # Non-code bytes at a target are expected; leave an unresolved marker.
        if decoded == 0:
            _msg('Could not decode anything at %#x', target)
            self.instructions[target] = None

        run = linear_run.LinearRun(target, next_target, addresses)
        self.runs[target] = run
        return run



    # Public API definitions begin here.

    def disassemble(self):
        '''
        Explore the image until no address is left in the worklist.

        :returns: The map of decoded instructions.
        :rtype: ``sortedcontainers.SortedDict``
        '''

        _msg('Beginning disassembly from entry point %#x', self.entry_point)

        while len(self.worklist):
            target = self.worklist.pop()

            # A previous linear run already decoded exactly at this address.
            if target in self.instructions:
                _msg('%#x already disassembled, skipping', target)
                continue

            if not self.image.in_code_region(target):
                _msg('%#x lies outside the code region, skipping', target)
                continue

            self._do_linear_run(target)

        _msg('Disassembly completed: %d instructions, %d targets, %d runs',
            len(self.instructions), len(self.targets), len(self.runs))

        return self.instructions


    def get_instruction(self, address):
        '''
        Return the :class:`instruction.Instruction` decoded at *address*.

        :param address: Address of instruction whose object to return.
        :returns: Instruction object for instruction at *address* or ``None``.
        :rtype: :class:`instruction.Instruction`
        '''
        return self.instructions.get(address)


    def get_run(self, address):
        '''
        Return the :class:`linear_run.LinearRun` that recorded the instruction
        at address *address*.

        :param address: Instruction address whose run to look up and return.
        :returns: The run that recorded *address* or ``None``.
        :rtype: :class:`linear_run.LinearRun`
        '''

        r = None
        for start_address in self.runs.irange(maximum=address, reverse=True):
            run = self.runs[start_address]
            if address in run.instructions:
                r = run
                break
        return r


    def get_code_xrefs_from(self, address):
        '''
        Return the addresses control may flow to from the instruction at
        *address*, by falling through or by a direct jump or call.

        :param address: Instruction address whose successors to return.
        :returns: Set of successor addresses.
        :rtype: ``set``
        '''
        return self.code_xrefs.get_successors(address)


    def get_code_xrefs_to(self, address):
        '''
        Return the addresses of instructions that may transfer control to
        *address*.

        :param address: Address whose predecessors to return.
        :returns: Set of predecessor addresses.
        :rtype: ``set``
        '''
        return self.code_xrefs.get_predecessors(address)


    def is_target(self, address):
        '''
        Check if *address* is a confirmed target.

        :param address: Address to check.
        :returns: ``True`` if a linear run starts or must stop at *address*.
        :rtype: ``bool``
        '''
        return address in self.targets
