#!/usr/bin/env python
'''worklist.py - Stack of addresses awaiting a linear decode run.'''


class Worklist(object):
    '''
    A stack of addresses. Popping returns the most recently pushed address, so
    exploration proceeds depth first. A companion set answers membership
    queries, and pending addresses may be withdrawn from the middle of the
    stack without disturbing the order of the others.
    '''

    def __init__(self, addresses=()):
        self._stack = []
        self._pending = set()
        for address in addresses:
            self.push(address)

    def __str__(self):
        return '<Worklist %d pending>' % len(self._stack)

    def __len__(self):
        return len(self._stack)

    def __contains__(self, address):
        return address in self._pending

    def __iter__(self):
        return iter(list(self._stack))

    def push(self, address):
        '''
        Push *address* on top of the stack. Returns ``False`` and leaves the
        stack untouched if *address* is already pending.
        '''
        if address in self._pending:
            return False
        self._stack.append(address)
        self._pending.add(address)
        return True

    def pop(self):
        '''Pop the most recently pushed address. Raises ``IndexError`` if empty.'''
        address = self._stack.pop()
        self._pending.discard(address)
        return address

    def remove(self, address):
        '''
        Withdraw pending *address*. Returns ``True`` if it was pending.
        '''
        if address not in self._pending:
            return False
        self._stack.remove(address)
        self._pending.discard(address)
        return True
