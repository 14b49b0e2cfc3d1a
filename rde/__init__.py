#!/usr/bin/env python
'''RDE - A capstone based recursive disassembly engine.'''

from rde import cpu
from rde import instruction
from rde import image
from rde import linear_run
from rde import worklist
from rde import xref_graph
from rde import disassembler
from rde import listing
