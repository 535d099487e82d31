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

Legality queries used to gate rearrangements, and whole network validators.
The local queries (is_descendant, is_connected, problem_4cycle) read the
current edge orientation and never mutate anything.
"""

from __future__ import annotations
import math
import networkx as nx
from .Network import Network, Node, Edge

###########################
#### LOCAL QUERIES ########
###########################

def is_descendant(des : Node, anc : Node) -> bool:
    """
    Check whether 'des' can be reached from 'anc' by following child edges.
    A node is not its own descendant.

    Args:
        des (Node): the candidate descendant
        anc (Node): the candidate ancestor

    Returns:
        bool: True if 'des' is a strict descendant of 'anc'.
    """
    visited : set[int] = set()
    stack : list[Node] = [anc]
    while stack:
        node = stack.pop()
        for edge in node.child_edges():
            child = edge.get_child()
            if child is des:
                return True
            if id(child) not in visited:
                visited.add(id(child))
                stack.append(child)
    return False

def is_connected(a : Node, b : Node) -> bool:
    """
    Check whether two nodes share an edge, regardless of direction.

    Args:
        a (Node): a node
        b (Node): a node

    Returns:
        bool: True if 'a' and 'b' are adjacent.
    """
    for edge in a.edges:
        if b in edge.nodes and a is not b:
            return True
    return False

def problem_4cycle(beta : Node, delta : Node,
                   alpha : Node, gamma : Node) -> bool:
    """
    Check whether an NNI around the quadruple (alpha, beta, gamma, delta) would
    close a 3-cycle. Before the move, alpha and beta hang from one end of the
    focus edge and gamma and delta from the other. The move swaps beta (or
    alpha) with delta (or gamma); if beta was adjacent to delta, or alpha to
    gamma, the focus edge and these two edges then form a triangle.

    Args:
        beta (Node): neighbor of u that stays with u
        delta (Node): neighbor of v that stays with v
        alpha (Node): the other neighbor of u
        gamma (Node): the other neighbor of v

    Returns:
        bool: True if the move would create a 3-cycle.
    """
    return is_connected(beta, delta) or is_connected(alpha, gamma)

##################################
#### ROOT COMPATIBILITY ##########
##################################

def no_root_below(edge : Edge) -> None:
    """
    Mark 'edge' and every edge below it as unable to contain the root. Stops
    where the flag is already off.

    Args:
        edge (Edge): the top edge of the region.
    """
    if not edge.contain_root:
        return
    edge.contain_root = False
    for child_edge in edge.get_child().child_edges():
        no_root_below(child_edge)

def update_contain_root(net : Network) -> None:
    """
    Recompute 'contain_root' on every edge from scratch: an edge may contain
    the root unless it lies strictly below a hybrid node.

    Args:
        net (Network): the network to update.
    """
    for edge in net.edges:
        edge.contain_root = True
    for node in net.get_hybrids():
        for edge in node.child_edges():
            no_root_below(edge)

def contain_root_valid(net : Network) -> bool:
    """
    Returns:
        bool: True if no edge strictly below a hybrid node may contain the
              root.
    """
    for node in net.get_hybrids():
        stack = list(node.child_edges())
        while stack:
            edge = stack.pop()
            if edge.contain_root:
                return False
            stack.extend(edge.get_child().child_edges())
    return True

###############################
#### NETWORK VALIDATORS #######
###############################

def is_dag(net : Network) -> bool:
    """
    Returns:
        bool: True if the network, as currently directed, has no directed
              cycle.
    """
    return nx.is_directed_acyclic_graph(net.to_networkx())

def has_2cycle(net : Network) -> bool:
    """
    Returns:
        bool: True if two distinct edges join the same pair of nodes.
    """
    seen : set[frozenset[int]] = set()
    for edge in net.edges:
        pair = frozenset(node.number for node in edge.nodes)
        if pair in seen:
            return True
        seen.add(pair)
    return False

def has_3cycle(net : Network) -> bool:
    """
    Returns:
        bool: True if three nodes are pairwise adjacent, ignoring direction.
    """
    G = nx.Graph(net.to_networkx().to_undirected())
    return any(count > 0 for count in nx.triangles(G).values())

def hybrid_parents_valid(net : Network) -> bool:
    """
    Check the parent structure of every node. The root has no parent; a tree
    node or leaf has exactly one parent edge, which is a major tree edge; a
    hybrid node has two hybrid parent edges, exactly one of them major, whose
    gammas (when both are known) sum to 1, and at most one child edge.

    Args:
        net (Network): the network to check.

    Returns:
        bool: True if all nodes pass.
    """
    for node in net.nodes:
        parents = node.parent_edges()
        if node is net.root:
            if parents:
                return False
            continue
        if not node.hybrid:
            if len(parents) != 1:
                return False
            edge = parents[0]
            if edge.hybrid or not edge.is_major:
                return False
            continue

        if len(parents) != 2 or len(node.child_edges()) > 1:
            return False
        if not all(edge.hybrid for edge in parents):
            return False
        if sum(1 for edge in parents if edge.is_major) != 1:
            return False
        gammas = [edge.gamma for edge in parents]
        if None not in gammas and not math.isclose(sum(gammas), 1.0):
            return False
    return True

def network_is_valid(net : Network, no3cycle : bool = False) -> bool:
    """
    Check every structural invariant a rearrangement has to preserve.

    Args:
        net (Network): the network to check.
        no3cycle (bool, optional): also reject 3-cycles. Defaults to False.

    Returns:
        bool: True if the network is a valid rooted network.
    """
    roots = [node for node in net.nodes if not node.parent_edges()]
    if roots != [net.root]:
        return False
    if not is_dag(net):
        return False
    if not nx.is_weakly_connected(net.to_networkx()):
        return False
    if has_2cycle(net) or (no3cycle and has_3cycle(net)):
        return False
    return hybrid_parents_valid(net) and contain_root_valid(net)
