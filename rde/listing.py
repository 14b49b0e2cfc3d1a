#!/usr/bin/env python
'''listing.py - Render the decoded instruction map as a linear listing.'''


def format_entry(address, insn):
    '''
    Render one listing line (without the trailing newline): the instruction's
    text, or its bare hexadecimal address if nothing was decoded there.
    '''
    if insn is None:
        return '0x%x' % address
    return insn.get_text()


def emit(instructions, destination):
    '''
    Write one line per entry of *instructions*, in ascending address order.

    :param instructions: Mapping of addresses to instruction objects or
        ``None``.
    :param destination: File-like object to write to. Write errors propagate.
    :returns: Number of lines written.
    :rtype: ``int``
    '''

    n = 0
    for address in sorted(instructions):
        destination.write('%s\n' % format_entry(address, instructions[address]))
        n += 1
    return n
