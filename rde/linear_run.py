'''
:mod:`linear_run` -- A class representing a linear decode run
=============================================================

.. module: linear_run
   :platform: Unix, Windows
   :synopsis: A class representing a linear decode run

About
-----
A simple class recording one linear decode run: where it started, the boundary
it was not allowed to cross and the instructions it contributed.

Classes
-------
'''


class LinearRun(object):
    '''
    Represents a linear decode run.

    .. automethod:: __init__
    '''

    def __init__(self, start_address, end_address, instructions):
        '''
        :param start_address: Address the run started decoding from.
        :param end_address: Address of the boundary that bounded the run, or
            ``None`` if the run was clipped only by decode failure.
        :param instructions: List of instruction addresses recorded by the run.
        '''
        self.start_address = start_address
        self.end_address = end_address
        self.instructions = instructions

    def __str__(self):
        if self.end_address is None:
            return '<LinearRun 0x%x->' % self.start_address
        return '<LinearRun 0x%x-0x%x>' % (self.start_address, self.end_address)

    def __eq__(self, other):
        return self.start_address == other.start_address and \
            self.end_address == other.end_address

    def __hash__(self):
        return self.start_address

    def __contains__(self, address):
        if self.end_address is None:
            return self.start_address <= address
        return self.start_address <= address < self.end_address

    def __len__(self):
        return len(self.instructions)
