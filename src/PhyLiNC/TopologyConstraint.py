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
Last Edit : 10/17/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [ ]

Topological constraints on a network search, and the network edits and
checks that go with them.

Two kinds of constraints are supported:
    1) CLADE: a set of taxa that must form a clade below a fixed stem edge.
    2) SPECIES: a set of individuals from the same species, attached as a
       polytomy below the node that used to be the species leaf.

A constraint is located once, from a network, and records the number of its
stem edge and of the node below it. A rearrangement violates the constraint
when that edge no longer points to that node.
"""

from __future__ import annotations
import csv
from enum import IntEnum, unique
import numpy as np
from .Network import Network, Node, Edge, NetworkError
from . import SearchSettings
from .GraphUtils import is_dag, has_2cycle, has_3cycle, \
                        hybrid_parents_valid, update_contain_root

#########################
#### EXCEPTION CLASS ####
#########################

class ConstraintError(Exception):
    """
    This exception is raised when a topology constraint cannot be built, or
    when a network does not satisfy its constraints.
    """
    def __init__(self, message = "Error with a topology constraint"):
        self.message = message
        super().__init__(self.message)

##########################
#### CLUSTER MATRICES ####
##########################

# Edge type codes of the last column of 'hardwired_clusters'
TREE_EDGE = 10
MAJOR_HYBRID_EDGE = 11
MINOR_HYBRID_EDGE = 12

def _edge_type_code(edge : Edge) -> int:
    if not edge.hybrid:
        return TREE_EDGE
    return MAJOR_HYBRID_EDGE if edge.is_major else MINOR_HYBRID_EDGE

def hardwired_clusters(net : Network, taxa : list[str] = None) -> np.ndarray:
    """
    Compute the hardwired cluster of every edge: the set of taxa below the
    edge, following all paths.

    Row i describes net.edges[i]. Column 0 holds the edge number, columns
    1..len(taxa) hold 1 if the taxon is below the edge and 0 otherwise, and
    the last column holds the edge type (TREE_EDGE, MAJOR_HYBRID_EDGE or
    MINOR_HYBRID_EDGE).

    Args:
        net (Network): a network.
        taxa (list[str], optional): column order of the taxa. Defaults to
                                    the leaf names of 'net'.

    Returns:
        np.ndarray: an integer matrix with len(net.edges) rows and
                    len(taxa) + 2 columns.
    """
    if taxa is None:
        taxa = net.leaf_names()
    column = {name : i + 1 for i, name in enumerate(taxa)}

    below : dict[int, np.ndarray] = {}
    for node in reversed(net.preorder()):
        row = np.zeros(len(taxa) + 2, dtype = int)
        if node.leaf and node.name in column:
            row[column[node.name]] = 1
        for child in node.get_children():
            row = np.maximum(row, below[id(child)])
        below[id(node)] = row

    matrix = np.zeros((len(net.edges), len(taxa) + 2), dtype = int)
    for i, edge in enumerate(net.edges):
        matrix[i] = below[id(edge.get_child())]
        matrix[i, 0] = edge.number
        matrix[i, -1] = _edge_type_code(edge)
    return matrix

#############################
#### TOPOLOGY CONSTRAINTS ###
#############################

@unique
class ConstraintType(IntEnum):
    CLADE = SearchSettings.CLADE
    SPECIES = SearchSettings.SPECIES

class TopologyConstraint:
    """
    A clade or species constraint, located on a specific network.
    """

    def __init__(self,
                 constraint_type : ConstraintType,
                 taxonnames : list[str],
                 net : Network) -> None:
        """
        Locate the stem edge of a group of taxa in 'net'.

        The stem edge is the lowest edge whose hardwired cluster contains all
        taxa of the group. Its cluster must be exactly the group.

        Raises:
            ConstraintError: if a name matches no leaf, if names are repeated,
                             if the group has fewer than 2 taxa, or if the
                             taxa do not form a clade in 'net'.
        Args:
            constraint_type (ConstraintType): CLADE or SPECIES.
            taxonnames (list[str]): the taxa (or individuals) of the group.
                                    Order is kept.
            net (Network): the network to locate the group in.
        """
        self.type : ConstraintType = ConstraintType(constraint_type)
        self.taxonnames : list[str] = list(taxonnames)

        if len(set(self.taxonnames)) != len(self.taxonnames):
            raise ConstraintError(f"Repeated taxon names in "
                                  f"{self.taxonnames}")
        if len(self.taxonnames) < 2:
            raise ConstraintError("A constraint needs at least 2 taxa, got " +
                                  str(self.taxonnames))

        leaves = {leaf.name : leaf for leaf in net.get_leaves()}
        missing = [name for name in self.taxonnames if name not in leaves]
        if missing:
            raise ConstraintError(f"Taxon names {missing} cannot be matched "
                                  f"to leaves. Check for typos.")
        self.taxonnums : list[int] = [leaves[name].number
                                      for name in self.taxonnames]

        stem = self._find_stem(net)
        self.edgenum : int = stem.number
        self.nodenum : int = stem.get_child().number

    def _find_stem(self, net : Network) -> Edge:
        taxa = net.leaf_names()
        matrix = hardwired_clusters(net, taxa)
        cols = [taxa.index(name) + 1 for name in self.taxonnames]
        depth = {id(node) : i for i, node in enumerate(net.preorder())}

        stem : Edge = None
        for i, edge in enumerate(net.edges):
            if matrix[i, cols].sum() != len(cols):
                continue
            if stem is None or depth[id(edge.get_child())] \
                                > depth[id(stem.get_child())]:
                stem = edge

        if stem is None or \
                matrix[net.edges.index(stem), 1:-1].sum() != len(cols):
            raise ConstraintError(f"Taxa {self.taxonnames} do not form a "
                                  f"clade in the network")
        return stem

    def __repr__(self) -> str:
        return f"TopologyConstraint({self.type.name}, {self.taxonnames}, " \
               f"edgenum={self.edgenum}, nodenum={self.nodenum})"

def clades_violated(net : Network,
                    constraints : list[TopologyConstraint]) -> bool:
    """
    Check whether the stem edge of some constraint no longer points to the
    node it pointed to when the constraint was built.

    Args:
        net (Network): the network the constraints were built on.
        constraints (list[TopologyConstraint]): the constraints.

    Returns:
        bool: True if at least one constraint is violated.
    """
    for constraint in constraints:
        stem = net.edge_by_number(constraint.edgenum)
        if stem.get_child().number != constraint.nodenum:
            return True
    return False

def check_network(net : Network,
                  constraints : list[TopologyConstraint]) -> bool:
    """
    Returns:
        bool: True if 'net' satisfies all constraints.
    """
    return not clades_violated(net, constraints)

##########################
#### NETWORK EDITING #####
##########################

def add_node_on_edge(net : Network, edge : Edge) -> Node:
    """
    Split an edge in two with a new degree-2 node. 'edge' keeps its number,
    its child and its hybrid status; a new tree edge joins the old parent to
    the new node.

        p                p
        |                |  <- new edge
        | edge    -->    n  (new node)
        |                |  <- edge
        c                c

    Args:
        net (Network): the network that owns 'edge'.
        edge (Edge): the edge to split.

    Returns:
        Node: the new node.
    """
    parent = edge.get_parent()
    node = Node(net.max_node_number() + 1)
    new_edge = Edge(net.max_edge_number() + 1)
    new_edge.nodes = [node, parent]
    new_edge.is_child1 = True
    new_edge.contain_root = edge.contain_root

    edge.nodes[edge.nodes.index(parent)] = node
    parent.edges[parent.edges.index(edge)] = new_edge
    node.edges = [edge, new_edge]

    net.add_node(node)
    net.add_edge(new_edge)
    return node

def add_leaf(net : Network, where : Node | Edge, leaf_name : str) -> Node:
    """
    Attach a new leaf below a node, or below a new node placed on an edge. A
    leaf that receives a child becomes an internal node. The new edge may
    contain the root only if the edge above it may.

    Args:
        net (Network): the network to edit.
        where (Node | Edge): where to attach the leaf.
        leaf_name (str): name of the new leaf.

    Returns:
        Node: the new leaf.
    """
    if isinstance(where, Edge):
        parent = add_node_on_edge(net, where)
    else:
        parent = where

    leaf = Node(net.max_node_number() + 1, leaf = True, name = leaf_name)
    edge = Edge(net.max_edge_number() + 1)
    edge.nodes = [leaf, parent]
    edge.is_child1 = True
    above = parent.parent_edges()
    edge.contain_root = not parent.hybrid and \
        (not above or above[0].contain_root)

    parent.leaf = False
    parent.edges.append(edge)
    leaf.edges.append(edge)
    net.add_node(leaf)
    net.add_edge(edge)
    return leaf

def add_individuals(net : Network,
                    species : str,
                    individuals : list[str]) -> TopologyConstraint | None:
    """
    Replace a species leaf by a polytomy of its individuals. The species node
    keeps its number and name and becomes the parent of one new leaf per
    individual.

    Raises:
        ConstraintError: if a name contains a space, or if no leaf is named
                         'species'.
    Args:
        net (Network): the network to edit.
        species (str): name of the species leaf.
        individuals (list[str]): names of the individuals of that species.

    Returns:
        TopologyConstraint | None: the species constraint, or None if there
                                   is a single individual (the species leaf
                                   is then simply renamed).
    """
    for name in [species] + list(individuals):
        if " " in name:
            raise ConstraintError(f"Species and individual names cannot "
                                  f"contain spaces: '{name}'")

    species_leaf = None
    for leaf in net.get_leaves():
        if leaf.name == species:
            species_leaf = leaf
            break
    if species_leaf is None:
        raise ConstraintError(f"No leaf named '{species}'")

    if len(individuals) == 1:
        species_leaf.name = individuals[0]
        return None

    for name in individuals:
        add_leaf(net, species_leaf, name)
    return TopologyConstraint(ConstraintType.SPECIES, individuals, net)

def map_individuals(net : Network,
                    filename : str) -> tuple[Network, list[TopologyConstraint]]:
    """
    Read a mapping of individuals to species from a csv file with columns
    'species' and 'individual', and attach the individuals to a copy of a
    species network.

    Args:
        net (Network): a species network. It is not modified.
        filename (str): path to the csv file.

    Returns:
        tuple[Network, list[TopologyConstraint]]: the network of individuals
                                                  and one species constraint
                                                  per species with more than
                                                  one individual.
    """
    groups : dict[str, list[str]] = {}
    with open(filename, "r", encoding = "utf8", newline = "") as file:
        reader = csv.DictReader(file)
        if reader.fieldnames is None or \
                not {"species", "individual"} <= set(reader.fieldnames):
            raise ConstraintError(f"{filename} needs 'species' and "
                                  f"'individual' columns")
        for row in reader:
            species = row["species"].strip()
            groups.setdefault(species, []).append(row["individual"].strip())

    new_net = net.duplicate()
    constraints : list[TopologyConstraint] = []
    for species, individuals in groups.items():
        constraint = add_individuals(new_net, species, individuals)
        if constraint is not None:
            constraints.append(constraint)
    return new_net, constraints

def fuse_edges_at(net : Network, node : Node) -> Edge:
    """
    Remove a degree-2 node that is not the root, merging its parent edge and
    its child edge. The child edge is kept, takes the place of the parent edge
    in the list of the grandparent, and its length becomes the sum of both
    lengths.

    Raises:
        NetworkError: if the node does not have degree 2 or is the root.
    Args:
        net (Network): the network that owns 'node'.
        node (Node): the node to remove.

    Returns:
        Edge: the merged edge.
    """
    if node.degree() != 2 or node is net.root:
        raise NetworkError(f"Cannot fuse edges at node {node.number}")
    parent_edge = node.parent_edges()[0]
    child_edge = node.child_edges()[0]
    grandparent = parent_edge.get_parent()

    lengths = [e.length for e in (parent_edge, child_edge)
               if e.length is not None]
    child_edge.length = sum(lengths) if lengths else None
    child_edge.nodes[child_edge.nodes.index(node)] = grandparent
    grandparent.edges[grandparent.edges.index(parent_edge)] = child_edge

    node.edges = [parent_edge]
    parent_edge.nodes = [node]
    net.remove_edge(parent_edge)
    net.remove_node(node)
    return child_edge

def _suppress_root(net : Network) -> None:
    """
    Remove a degree-2 root by merging its two edges, rooting the network at
    the first of its children that is a tree node.
    """
    root = net.root
    first, second = root.child_edges()
    if all(e.get_child().leaf or e.get_child().hybrid for e in (first, second)):
        raise NetworkError("Cannot suppress a degree-2 root without a tree "
                           "node below it")
    for keep, drop in ((second, first), (first, second)):
        new_root = drop.get_child()
        if new_root.leaf or new_root.hybrid:
            continue
        lengths = [e.length for e in (keep, drop) if e.length is not None]
        keep.length = sum(lengths) if lengths else None
        keep.nodes[keep.nodes.index(root)] = new_root
        new_root.edges[new_root.edges.index(drop)] = keep

        root.edges = [drop]
        drop.nodes = [root]
        net.remove_edge(drop)
        net.remove_node(root)
        net.root = new_root
        return

##########################
#### NETWORK CHECKS ######
##########################

def check_species_network(net : Network,
                          constraints : list[TopologyConstraint]) -> bool:
    """
    Prepare a species level network: fuse the edges at degree-2 nodes other
    than the root, and reject polytomies other than the species nodes of
    species constraints.

    Raises:
        ConstraintError: if an internal node has degree above 3 and is not
                         the node of a species constraint.
    Args:
        net (Network): the network to check, edited in place.
        constraints (list[TopologyConstraint]): the constraints on 'net'.

    Returns:
        bool: True if the network satisfies its constraints.
    """
    species_nodes = {c.nodenum for c in constraints
                     if c.type == ConstraintType.SPECIES}
    for node in list(net.nodes):
        if node.leaf or node is net.root:
            if node.degree() > 3:
                raise ConstraintError(f"Node {node.number} has degree "
                                      f"{node.degree()}: a binary network is "
                                      f"required")
            continue
        if node.degree() < 3:
            fuse_edges_at(net, node)
        elif node.degree() > 3 and node.number not in species_nodes:
            raise ConstraintError(f"Node {node.number} has degree "
                                  f"{node.degree()}: all interior nodes must "
                                  f"have degree 3")
    return check_network(net, constraints)

def check_network_before_linc(net : Network,
                              constraints : list[TopologyConstraint] = None,
                              no3cycle : bool = SearchSettings.NO_3CYCLE,
                              max_hybrid : int = SearchSettings.MAX_HYBRID,
                              no_hybrid_ladder : bool = \
                                  SearchSettings.NO_HYBRID_LADDER,
                              unzip : bool = SearchSettings.UNZIP) -> None:
    """
    Validate and normalize a starting network before a search: fuse degree-2
    nodes (the root included), check the constraints and the structure of the
    network, zero the edges below hybrid nodes when unzipping, and recompute
    which edges may contain the root.

    Raises:
        ConstraintError: if the network does not satisfy its constraints.
        NetworkError: if the network is not a DAG, if a hybrid node is
                      malformed, if it has a 2-cycle (or a 3-cycle when
                      'no3cycle' is set), too many hybrid nodes, or a hybrid
                      ladder when these are forbidden.
    Args:
        net (Network): the network to check, edited in place.
        constraints (list[TopologyConstraint], optional): the constraints.
                                                          Defaults to none.
        no3cycle (bool, optional): Forbid 3-cycles. Defaults to True.
        max_hybrid (int, optional): Maximum number of hybrid nodes. Defaults
                                    to no maximum.
        no_hybrid_ladder (bool, optional): Forbid a hybrid node with a hybrid
                                           parent. Defaults to False.
        unzip (bool, optional): Set the length of the edge below each hybrid
                                node to 0. Defaults to True.
    """
    if constraints is None:
        constraints = []

    if net.root is not None and net.root.degree() == 2:
        _suppress_root(net)
    if not check_species_network(net, constraints):
        raise ConstraintError("The network violates its own constraints")

    if not is_dag(net):
        raise NetworkError("The network has a directed cycle")
    if not hybrid_parents_valid(net):
        raise NetworkError("Each hybrid node needs two hybrid parent edges, "
                           "exactly one of them major")
    if has_2cycle(net):
        raise NetworkError("The network has a 2-cycle")
    if no3cycle and has_3cycle(net):
        raise NetworkError("The network has a 3-cycle")

    hybrids = net.get_hybrids()
    if max_hybrid is not None and len(hybrids) > max_hybrid:
        raise NetworkError(f"The network has {len(hybrids)} hybrid nodes, "
                           f"more than the maximum of {max_hybrid}")
    if no_hybrid_ladder:
        for node in hybrids:
            if any(parent.hybrid for parent in node.get_parents()):
                raise NetworkError(f"Hybrid ladder at node {node.number}")

    if unzip:
        # no time passes below a hybrid node
        for node in hybrids:
            node.child_edges()[0].length = 0.0

    update_contain_root(net)
