#!/usr/bin/env python
'''xref_graph.py - Simple, but memory hungry, code cross reference graph.'''

import collections


class XRefGraph(object):
    '''
    Simple, but memory hungry, graph of code cross references. Nodes are
    instruction addresses and an edge ``(src, dst)`` means control may flow
    from the instruction at *src* to *dst*, either by falling through or by a
    direct jump or call. Designed with Python sets so that no checks for
    duplicates are performed when nodes or edges are added.
    '''

    def __init__(self):
        self.nodes = set()
        self.edges = set()
        self.outgoing = collections.defaultdict(set)
        self.incoming = collections.defaultdict(set)

    def __str__(self):
        return '<XRefGraph %d nodes, %d edges>' % \
            (len(self.nodes), len(self.edges))

    def __contains__(self, node):
        return node in self.nodes

    def add_node(self, name):
        '''Add a node in the graph.'''
        self.nodes.add(name)

    def add_edge(self, edge):
        '''Add an edge in the graph. New nodes are automatically added.'''
        src, dst = edge
        self.nodes.add(src)
        self.nodes.add(dst)
        self.edges.add(edge)
        self.outgoing[src].add(dst)
        self.incoming[dst].add(src)

    def get_successors(self, name):
        '''Return the set of nodes *name* has edges to.'''
        return set(self.outgoing.get(name, ()))

    def get_predecessors(self, name):
        '''Return the set of nodes that have edges to *name*.'''
        return set(self.incoming.get(name, ()))

    def get_reachable(self, name):
        '''
        Return the set of nodes reachable from *name*, *name* included.
        '''
        seen = set([name])
        stack = [name]
        while len(stack):
            node = stack.pop()
            for successor in self.get_successors(node):
                if successor not in seen:
                    seen.add(successor)
                    stack.append(successor)
        return seen
