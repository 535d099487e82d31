#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyLiNC --
##  Local Rearrangements of Semidirected Phylogenetic Networks
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Author : Mark Kessler
Last Stable Edit : 10/17/26
First Included in Version : 1.0.0
Approved for Release Date : Yes.

Extended newick reading and writing.

Numbering used by 'read_topology':
    - The root gets -2, every further "(" gets the next negative number in
      reading order.
    - Leaves and hybrid nodes get 1, 2, ... in the order their labels are
      read. A hybrid node keeps the number given the first time its label is
      read.
    - Edges are numbered 1, 2, ... as they are closed, ie after the child's
      subtree, label and annotation have been read.
"""

from __future__ import annotations
import math
import warnings
from .Network import Network, Node, Edge
from .GraphUtils import update_contain_root

#########################
#### EXCEPTION CLASS ####
#########################

class NewickParserError(Exception):
    """
    Error class for any exceptions relating to failing to parse a newick string
    into a Network object
    """
    def __init__(self, message : str = "Error parsing a newick string") -> None:
        """
        Initialize a new error message

        Args:
            message (str, optional): The error message. Defaults to "Error
                                     parsing a newick string".
        Returns:
            N/A
        """
        super().__init__(message)
        self.message = message

##########################
#### HELPER FUNCTIONS ####
##########################

# Characters that end a label
_DELIMITERS = set("(),:;[")

def _format_number(value : float) -> str:
    return str(value)

def _annotation(edge : Edge) -> str:
    """
    Build the ":length" / "::gamma" suffix of an edge. Gamma is written on
    hybrid edges only, and only when known.
    """
    text = ""
    if edge.length is not None:
        text += ":" + _format_number(edge.length)
    if edge.hybrid and edge.gamma is not None:
        if edge.length is None:
            text += ":"
        text += "::" + _format_number(edge.gamma)
    return text

###############################
#### EXTENDED NEWICK READER ###
###############################

class _NewickReader:
    """
    Single use, character scanning reader of one extended newick string.
    """

    def __init__(self, newick_str : str) -> None:
        self.text : str = newick_str.strip()
        self.pos : int = 0
        self.net : Network = Network()
        self.next_internal : int = -2
        self.next_named : int = 1
        self.next_edge : int = 1

        # hybrid label -> hybrid node, and the parent edges seen so far
        self.hybrids : dict[str, Node] = {}
        self.hybrid_edges : dict[str, list[tuple[Edge, bool]]] = {}
        self.has_subtree : set[str] = set()
        self.leaf_names : set[str] = set()

    def error(self, msg : str) -> NewickParserError:
        return NewickParserError(f"{msg} (at character {self.pos} of "
                                 f"'{self.text}')")

    def peek(self) -> str:
        self.skip_blanks()
        if self.pos >= len(self.text):
            raise self.error("Unexpected end of newick string")
        return self.text[self.pos]

    def skip_blanks(self) -> None:
        """
        Skip whitespace and bracketed comments.
        """
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char.isspace():
                self.pos += 1
            elif char == "[":
                end = self.text.find("]", self.pos)
                if end == -1:
                    raise self.error("Unterminated comment")
                self.pos = end + 1
            else:
                return

    def read_label(self) -> str:
        self.skip_blanks()
        if self.pos < len(self.text) and self.text[self.pos] == "'":
            end = self.text.find("'", self.pos + 1)
            if end == -1:
                raise self.error("Unterminated quoted label")
            label = self.text[self.pos + 1 : end]
            self.pos = end + 1
            return label

        start = self.pos
        while self.pos < len(self.text) \
                and self.text[self.pos] not in _DELIMITERS \
                and not self.text[self.pos].isspace():
            self.pos += 1
        return self.text[start : self.pos]

    def read_annotation(self) -> list[float]:
        """
        Read ":length:support:gamma", where any field may be empty.

        Returns:
            list[float]: the three fields, None where missing.
        """
        fields : list[float] = [None, None, None]
        index = 0
        while self.peek() == ":":
            if index > 2:
                raise self.error("Too many ':' separated edge fields")
            self.pos += 1
            start = self.pos
            while self.pos < len(self.text) \
                    and self.text[self.pos] in "0123456789.eE+-":
                self.pos += 1
            token = self.text[start : self.pos]
            if token != "":
                try:
                    fields[index] = float(token)
                except ValueError:
                    raise self.error(f"Malformed edge field '{token}'")
            index += 1
        return fields

    def new_edge(self, child : Node, parent : Node,
                 fields : list[float]) -> Edge:
        edge = Edge(self.next_edge)
        self.next_edge += 1
        edge.nodes = [child, parent]
        edge.is_child1 = True
        length, _, gamma = fields
        if length is not None and length < 0:
            raise self.error(f"Negative branch length {length}")
        edge.length = length
        child.edges.append(edge)
        parent.edges.append(edge)
        self.net.add_edge(edge)

        if child.hybrid:
            edge.hybrid = True
            edge.gamma = gamma
        elif gamma is not None:
            warnings.warn(f"gamma value {gamma} given on tree edge "
                          f"{edge.number} was ignored")
        return edge

    def read_subtree(self, parent : Node) -> Node:
        """
        Read one subtree, whose parent node is 'parent', and the edge above it.
        The root is read with 'parent' set to None.
        """
        if self.peek() == "(":
            self.pos += 1
            node = Node(self.next_internal)
            self.next_internal -= 1
            while True:
                self.read_subtree(node)
                char = self.peek()
                self.pos += 1
                if char == ")":
                    break
                if char != ",":
                    raise self.error(f"Expected ',' or ')' but found '{char}'")
            node = self.finish_internal(node, self.read_label())
            is_reference = False
        else:
            label = self.read_label()
            node = self.finish_leaf(label)
            is_reference = label.startswith("#")

        fields = self.read_annotation()
        if parent is not None:
            edge = self.new_edge(node, parent, fields)
            if node.hybrid:
                self.hybrid_edges[node.name].append((edge, is_reference))
        return node

    def finish_leaf(self, label : str) -> Node:
        """
        Create a leaf, or resolve a '#name' reference to a hybrid node.
        """
        if label == "":
            raise self.error("Missing leaf label")
        if label.startswith("#"):
            name = label[1:]
            if name in self.hybrids:
                return self.hybrids[name]
            node = Node(self.next_named, name = name, hybrid = True)
            self.next_named += 1
            self.hybrids[name] = node
            self.hybrid_edges[name] = []
            self.net.add_node(node)
            return node

        if label in self.leaf_names:
            raise self.error(f"Duplicate leaf label '{label}'")
        self.leaf_names.add(label)
        node = Node(self.next_named, leaf = True, name = label)
        self.next_named += 1
        self.net.add_node(node)
        return node

    def finish_internal(self, node : Node, label : str) -> Node:
        """
        Give an internal node its label. A '#name' label turns the node into
        a hybrid node; if the hybrid was already referenced, the node is merged
        into the existing hybrid node.
        """
        if not label.startswith("#"):
            node.name = label
            self.net.add_node(node)
            return node

        name = label[1:]
        if name in self.has_subtree:
            raise self.error(f"Hybrid '{name}' has two full subtrees")
        self.has_subtree.add(name)

        if name not in self.hybrids:
            node.number = self.next_named
            self.next_named += 1
            node.name = name
            node.hybrid = True
            self.hybrids[name] = node
            self.hybrid_edges[name] = []
            self.net.add_node(node)
            return node

        # Merge into the hybrid node first seen as a reference
        hybrid = self.hybrids[name]
        for edge in node.edges:
            edge.nodes[edge.nodes.index(node)] = hybrid
        hybrid.edges = node.edges + hybrid.edges
        return hybrid

    def resolve_hybrid(self, name : str) -> None:
        """
        Set the major/minor roles and gammas of the two parent edges of a
        hybrid node. By default the edge above the full subtree is major; given
        gammas take precedence.
        """
        entries = self.hybrid_edges[name]
        if name not in self.has_subtree:
            raise NewickParserError(f"Hybrid '{name}' has no subtree")
        if len(entries) != 2:
            raise NewickParserError(f"Hybrid '{name}' must have exactly 2 "
                                    f"parents, found {len(entries)}")

        edges = [edge for edge, _ in entries]
        # the edge above the full subtree is the one that is not a reference
        default_major = [edge for edge, is_ref in entries if not is_ref]
        major = default_major[0] if default_major else edges[0]

        g1, g2 = edges[0].gamma, edges[1].gamma
        if g1 is not None and g2 is not None:
            if not math.isclose(g1 + g2, 1.0):
                raise NewickParserError(f"Gammas of hybrid '{name}' do not sum "
                                        f"to 1: {g1}, {g2}")
        elif g1 is not None:
            edges[1].gamma = 1.0 - g1
        elif g2 is not None:
            edges[0].gamma = 1.0 - g2

        for edge in edges:
            if edge.gamma is not None and edge.gamma > 0.5:
                major = edge
        for edge in edges:
            edge.is_major = edge is major

    def read(self) -> Network:
        if self.peek() != "(":
            raise self.error("Newick string must start with '('")
        root = self.read_subtree(None)
        if root.hybrid:
            raise self.error("The root cannot be a hybrid node")
        if self.peek() != ";":
            raise self.error("Newick string must end with ';'")
        self.pos += 1
        self.skip_blanks()
        if self.pos != len(self.text):
            raise self.error("Unexpected characters after ';'")

        self.net.root = root
        for name in self.hybrids:
            self.resolve_hybrid(name)
        update_contain_root(self.net)
        return self.net

def read_topology(newick_str : str) -> Network:
    """
    Read a network from an extended newick string, eg
    "(#H1:::0.2,((C,(B)#H1:::0.8),O));".

    Edges are annotated as ":length:support:gamma". Hybrid nodes are labeled
    "#name": the full subtree appears once, the other occurrence is a
    reference. All edges are directed away from the root (nodes[0] is the
    child), and edges below hybrid nodes are marked as unable to contain the
    root.

    Raises:
        NewickParserError: if the string is malformed, if a hybrid does not
                           have exactly two parents and one subtree, or if
                           its gammas do not sum to 1.
    Args:
        newick_str (str): an extended newick string.

    Returns:
        Network: the parsed network.
    """
    return _NewickReader(newick_str).read()

###############################
#### EXTENDED NEWICK WRITER ###
###############################

def _write_subtree(node : Node, parent_edge : Edge) -> str:
    if node.hybrid and parent_edge is not None and not parent_edge.is_major:
        return "#" + node.name + _annotation(parent_edge)

    text = ""
    children = node.child_edges()
    if children:
        text = "(" + ",".join(_write_subtree(edge.get_child(), edge)
                              for edge in children) + ")"
    text += ("#" + node.name) if node.hybrid else node.name
    if parent_edge is not None:
        text += _annotation(parent_edge)
    return text

def write_topology(net : Network) -> str:
    """
    Write a network as an extended newick string.

    The network is traversed depth first from the root, with children in the
    order of each node's edge list. A hybrid node's subtree is written below
    its major parent and referenced as "#name" below its minor parent.

    Args:
        net (Network): a rooted network.

    Returns:
        str: the extended newick string, ending in ';'.
    """
    return _write_subtree(net.root, None) + ";"
