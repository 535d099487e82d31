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
Design - [x]

Nearest neighbor interchanges (NNI) on semidirected phylogenetic networks.

An NNI around a focus edge uv detaches one neighbor of u and one neighbor of
v and swaps them:

    α - u -- v ------ δ
        |    |
        β    γ

    α ------ v -- u - δ
             |    |
             γ    β

The number of NNIs around uv depends on whether u and v are tree (B) or
hybrid (R) nodes, and on whether uv may contain the root, in which case the
direction of the edges around uv is not fixed (semidirected network).
Following Gambette et al. (2017), fig. 8, for rooted networks:

    - BB: 2 moves, 8 if uv may contain the root
    - RR: 2 moves
    - BR: 3 moves, 6 if uv may contain the root
    - RB: 4 moves

Every successful move returns an UndoToken. Replaying the token restores the
network exactly, including the order of each node's edges, so that the
newick string of the network is unchanged.
"""

from __future__ import annotations
from enum import Enum
from typing import NamedTuple
import numpy as np
from .Network import Network, Node, Edge, get_major_parent_edge, \
                     get_minor_parent_edge, edge_relation, PARENT, CHILD
from .GraphUtils import is_descendant, problem_4cycle
from .TopologyConstraint import TopologyConstraint, check_network
from .Logger import MoveLogger
from . import SearchSettings

#########################
#### MOVE CASES #########
#########################

class MoveCase(Enum):
    """
    Configuration of a focus edge uv, with u the parent of v. The first letter
    describes u, the second v: B for a tree (bifurcating) node, R for a
    hybrid (reticulate) node.
    """
    RR = "RR"
    BR = "BR"
    RB = "RB"
    BB = "BB"

def move_case(edge : Edge) -> MoveCase:
    """
    Args:
        edge (Edge): a focus edge.

    Returns:
        MoveCase: the configuration of the focus edge.
    """
    parent_hybrid = edge.get_parent().hybrid
    if edge.hybrid:
        return MoveCase.RR if parent_hybrid else MoveCase.BR
    return MoveCase.RB if parent_hybrid else MoveCase.BB

def nni_max(edge : Edge) -> int:
    """
    Number of NNI moves around an edge. 0 if the edge is external, or if either
    of its nodes does not have exactly 3 edges (polytomy).

    Args:
        edge (Edge): a focus edge.

    Returns:
        int: 2 (RR), 3 or 6 (BR), 4 (RB), 2 or 8 (BB). The larger BR and BB
             counts apply when the edge may contain the root.
    """
    if edge.nodes[0].degree() != 3 or edge.nodes[1].degree() != 3:
        return 0
    case = move_case(edge)
    if case == MoveCase.RR:
        return 2
    if case == MoveCase.BR:
        return 6 if edge.contain_root else 3
    if case == MoveCase.RB:
        return 4
    if case == MoveCase.BB:
        return 8 if edge.contain_root else 2
    raise ValueError(f"Unknown move case {case}")

#########################
#### UNDO TOKENS ########
#########################

class UndoToken(NamedTuple):
    """
    Everything needed to revert an NNI: the five relinked objects, the two
    direction flags computed when the move was made, and four list slot
    indices. Its layout is the argument list of the relinking primitive, so
    that reverting a move is the same operation as making it.
    """
    net : Network
    alpha_u : Edge
    u : Node
    uv : Edge
    v : Node
    v_delta : Edge
    flip : bool
    inner : bool
    u_in_alpha_u : int
    alpha_u_in_u : int
    v_delta_in_v : int
    v_in_v_delta : int

    def undo(self) -> UndoToken:
        """
        Revert the move.

        Returns:
            UndoToken: a token that, in turn, makes the move again.
        """
        return _relink(*self)

##########################
#### RELINKING ###########
##########################

def _expected_contain_root(edge : Edge) -> bool:
    parent = edge.get_parent()
    if parent.hybrid:
        return False
    parent_edges = parent.parent_edges()
    if not parent_edges:
        return True
    return parent_edges[0].contain_root

def _refresh_contain_root(edge : Edge) -> None:
    """
    Recompute 'contain_root' for 'edge', then for the edges below it for as
    long as their flag disagrees with the edge above.
    """
    edge.contain_root = _expected_contain_root(edge)
    for child_edge in edge.get_child().child_edges():
        if child_edge.contain_root != _expected_contain_root(child_edge):
            _refresh_contain_root(child_edge)

def _take_inheritance(receiver : Edge, donor : Edge) -> None:
    # the donor becomes a tree edge
    receiver.gamma, receiver.is_major = donor.gamma, donor.is_major
    donor.gamma, donor.is_major = 1.0, True

def _relink(net : Network, alpha_u : Edge, u : Node, uv : Edge, v : Node,
            v_delta : Edge, flip : bool, inner : bool,
            u_in_alpha_u : int, alpha_u_in_u : int,
            v_delta_in_v : int, v_in_v_delta : int) -> UndoToken:
    """
    Swap the far ends of 'alpha_u' and 'v_delta': 'alpha_u' now hangs from v
    and 'v_delta' from u, each in the list slot the other used to occupy.
    Then update the direction of uv, hybrid status and inheritance of the
    three edges, and 'contain_root' around u and v.

    Adjacencies are not checked. Use 'nni' instead.
    """
    alpha_u.nodes[u_in_alpha_u] = v
    u.edges[alpha_u_in_u] = v_delta
    v.edges[v_delta_in_v] = alpha_u
    v_delta.nodes[v_in_v_delta] = u

    if flip:
        uv.is_child1 = not uv.is_child1

    if u.hybrid and not v.hybrid:
        if flip:
            if uv.hybrid:
                # uv now points to v: v_delta is the new parent edge of u
                uv.hybrid = False
                v_delta.hybrid = True
                _take_inheritance(v_delta, uv)
            else:
                # uv now points to u and replaces alpha_u as a parent of u
                uv.hybrid = True
                alpha_u.hybrid = False
                _take_inheritance(uv, alpha_u)
        elif inner:
            # α->u<-v<-δ: v_delta replaces alpha_u as a parent of u
            alpha_u.hybrid = False
            v_delta.hybrid = True
            _take_inheritance(v_delta, alpha_u)
    elif u.hybrid and v.hybrid:
        # uv stays hybrid, and trades inheritance with the hybrid edge
        # that took its former place
        other = alpha_u if uv.get_child() is u else v_delta
        uv.gamma, other.gamma = other.gamma, uv.gamma
        uv.is_major, other.is_major = other.is_major, uv.is_major

    for edge in u.edges + v.edges:
        _refresh_contain_root(edge)
    net.invalidate_preorder()

    return UndoToken(net, v_delta, u, uv, v, alpha_u, flip, inner,
                     v_in_v_delta, alpha_u_in_u, v_delta_in_v, u_in_alpha_u)

def nni_swap(net : Network, alpha_u : Edge, u : Node, uv : Edge, v : Node,
             v_delta : Edge) -> UndoToken:
    """
    Perform the NNI that detaches 'alpha_u' from u and 'v_delta' from v, and
    reattaches them to v and u respectively (see the module docstring).

    The direction of uv is flipped if the edges were directed α->u->v->δ or
    α<-u<-v<-δ. 'inner' records the configuration α->u<-v<-δ, in which the
    hybrid status moves from 'alpha_u' to 'v_delta'.

    Node and edge numbers are not modified. Adjacencies are not checked, and
    configurations that 'nni' never produces (u tree and v hybrid, or
    α->u<-v->δ with u hybrid) are not handled.

    Args:
        net (Network): the network that owns all five objects.
        alpha_u (Edge): edge between u and α.
        u (Node): one node of the focus edge.
        uv (Edge): the focus edge.
        v (Node): the other node of the focus edge.
        v_delta (Edge): edge between v and δ.

    Returns:
        UndoToken: the token to undo the move.
    """
    u_in_alpha_u = alpha_u.nodes.index(u)
    alpha_u_in_u = u.edges.index(alpha_u)
    v_delta_in_v = v.edges.index(v_delta)
    v_in_v_delta = v_delta.nodes.index(v)

    alpha_u_child = alpha_u.get_child()
    uv_child = uv.get_child()
    v_delta_child = v_delta.get_child()

    flip = (alpha_u_child is u and uv_child is v and v_delta_child is not v) \
        or (alpha_u_child is not u and uv_child is u and v_delta_child is v)
    inner = (not flip) and alpha_u_child is u and v_delta_child is v

    return _relink(net, alpha_u, u, uv, v, v_delta, flip, inner,
                   u_in_alpha_u, alpha_u_in_u, v_delta_in_v, v_in_v_delta)

def _undo_if_cyclic(token : UndoToken) -> UndoToken | None:
    """
    Undo a swap that closed a directed cycle. Any new cycle runs through one
    of the three relinked edges, so only their endpoints are checked. This
    can happen once 2- or 3-cycles are allowed.

    Args:
        token (UndoToken): the token returned by the swap.

    Returns:
        UndoToken | None: 'token', or None if the swap was undone.
    """
    for edge in (token.alpha_u, token.uv, token.v_delta):
        if edge.get_parent() is edge.get_child() or \
           is_descendant(edge.get_parent(), edge.get_child()):
            token.undo()
            return None
    return token

#########################
#### NNI MOVES ##########
#########################

def _labels_at_u(u : Node, uv : Edge) -> tuple[Node, Edge, Node, Edge]:
    """
    Label the two neighbors of u other than v. For a hybrid u, α is the major
    parent and β the minor parent. For a tree node, α is the parent, or the
    first child if u is the root, and β is the remaining child.
    """
    if u.hybrid:
        alpha_u = get_major_parent_edge(u)
        beta_u = get_minor_parent_edge(u)
        return alpha_u.get_parent(), alpha_u, beta_u.get_parent(), beta_u

    labels = [edge_relation(edge, u, uv) for edge in u.edges]
    children = [i for i, lab in enumerate(labels) if lab == CHILD]
    if PARENT in labels:
        alpha_u = u.edges[labels.index(PARENT)]
        alpha = alpha_u.get_parent()
    else:
        alpha_u = u.edges[children.pop(0)]
        alpha = alpha_u.get_child()
    beta_u = u.edges[children[0]]
    return alpha, alpha_u, beta_u.get_child(), beta_u

def _labels_at_v(v : Node, uv : Edge) -> tuple[Node, Edge, Node, Edge]:
    """
    Label the two neighbors of v other than u. For a hybrid v, γ is the other
    parent and δ the child. For a tree node, γ and δ are the two children.
    """
    labels = [edge_relation(edge, v, uv) for edge in v.edges]
    if v.hybrid:
        v_gamma = v.edges[labels.index(PARENT)]
        v_delta = v.edges[labels.index(CHILD)]
        return v_gamma.get_parent(), v_gamma, v_delta.get_child(), v_delta

    children = [i for i, lab in enumerate(labels) if lab == CHILD]
    v_gamma = v.edges[children[0]]
    v_delta = v.edges[children[1]]
    return v_gamma.get_child(), v_gamma, v_delta.get_child(), v_delta

def nni(net : Network, uv : Edge, move : int,
        no3cycle : bool = SearchSettings.NO_3CYCLE) -> UndoToken | None:
    """
    Perform NNI number 'move' around the focus edge 'uv', in place.

    The moves are numbered 1 to nni_max(uv). When uv may contain the root,
    the upper half of the BB moves uses v in place of u (and the labels
    around them swapped), and the upper half of the remaining BB and BR moves
    swaps the labels α and β. BR moves graft γ onto α (move 1) or onto β
    (move 2), or graft δ onto the parent of u (move 3).

    The move fails, and the network is left untouched, if uv is external or
    next to a polytomy, if 'move' is not a valid move number, if the move
    would create a directed cycle, or, when 'no3cycle' is set, if the move
    would create a 3-cycle.

    Args:
        net (Network): the network that owns 'uv'.
        uv (Edge): the focus edge.
        move (int): a move number, in 1..nni_max(uv).
        no3cycle (bool, optional): Forbid moves creating a 3-cycle. Defaults
                                   to True.

    Returns:
        UndoToken | None: the token to undo the move, None if it failed.
    """
    n_moves = nni_max(uv)
    if n_moves == 0 or not 1 <= move <= n_moves:
        return None

    u = uv.get_parent()
    v = uv.get_child()
    alpha, alpha_u, beta, beta_u = _labels_at_u(u, uv)
    gamma, v_gamma, delta, v_delta = _labels_at_v(v, uv)

    # Semidirected swaps: BB or BR, when uv may contain the root
    if not u.hybrid and uv.contain_root:
        base = 3
        if not v.hybrid:
            if move > 4:
                move -= 4
                u, v = v, u
                alpha, alpha_u, beta, beta_u, gamma, v_gamma, delta, v_delta = \
                    gamma, v_gamma, delta, v_delta, alpha, alpha_u, beta, beta_u
            base = 2
        if move > base:
            move -= base
            alpha, alpha_u, beta, beta_u = beta, beta_u, alpha, alpha_u

    # Rooted moves
    if u.hybrid:
        # RR or RB
        if move in (2, 4):
            alpha, alpha_u, beta, beta_u = beta, beta_u, alpha, alpha_u
        if not v.hybrid and move > 2:
            gamma, v_gamma, delta, v_delta = delta, v_delta, gamma, v_gamma
        if no3cycle and problem_4cycle(alpha, gamma, beta, delta):
            return None
        return _undo_if_cyclic(nni_swap(net, alpha_u, u, uv, v, v_delta))

    if not v.hybrid:
        # BB
        if move == 2:
            gamma, v_gamma, delta, v_delta = delta, v_delta, gamma, v_gamma
        if no3cycle and problem_4cycle(alpha, gamma, beta, delta):
            return None
        return _undo_if_cyclic(nni_swap(net, alpha_u, u, uv, v, v_delta))

    # BR: reject moves that would create a directed cycle
    alpha_parent_u = alpha_u.get_child() is u
    beta_parent_u = beta_u.get_child() is u
    if alpha_parent_u:
        if is_descendant(gamma, beta):
            return None
    elif beta_parent_u:
        if is_descendant(gamma, alpha):
            return None
    elif move == 1 and is_descendant(gamma, alpha):
        return None
    elif move == 2 and is_descendant(gamma, beta):
        return None
    elif move == 3:
        # u is the root: δ cannot be grafted above it
        return None

    if move == 1:
        if no3cycle and problem_4cycle(alpha, gamma, beta, delta):
            return None
        return _undo_if_cyclic(nni_swap(net, v_delta, v, uv, u, alpha_u))
    if move == 2:
        if no3cycle and problem_4cycle(beta, gamma, alpha, delta):
            return None
        return _undo_if_cyclic(nni_swap(net, v_delta, v, uv, u, beta_u))
    if alpha_parent_u:
        if no3cycle and problem_4cycle(alpha, delta, beta, gamma):
            return None
        return _undo_if_cyclic(nni_swap(net, v_gamma, v, uv, u, alpha_u))
    if no3cycle and problem_4cycle(alpha, gamma, beta, delta):
        return None
    return _undo_if_cyclic(nni_swap(net, v_gamma, v, uv, u, beta_u))

def nni_constrained(net : Network,
                    uv : Edge,
                    constraints : list[TopologyConstraint],
                    no3cycle : bool = SearchSettings.NO_3CYCLE,
                    rng : np.random.Generator = None,
                    logger : MoveLogger = None) -> UndoToken | None:
    """
    Attempt an NNI around 'uv', chosen at random among all NNIs that keep the
    network a DAG and satisfy the topology constraints.

    Candidate moves are tried in random order. A move that succeeds but
    violates a constraint is undone before the next candidate is tried. No
    move is attempted on the stem edge of a constraint.

    Args:
        net (Network): the network that owns 'uv'.
        uv (Edge): the focus edge.
        constraints (list[TopologyConstraint]): constraints to honor.
        no3cycle (bool, optional): Forbid moves creating a 3-cycle. Defaults
                                   to True.
        rng (np.random.Generator, optional): random generator used to order
                                             the candidates. Defaults to a
                                             fresh, unseeded generator.
        logger (MoveLogger, optional): records accepted and undone moves.
                                       Defaults to None.

    Returns:
        UndoToken | None: the token to undo the accepted move, None if every
                          candidate failed (the network is then unchanged).
    """
    for constraint in constraints:
        if constraint.edgenum == uv.number:
            return None

    if rng is None:
        rng = SearchSettings.make_rng(None)

    for move in rng.permutation(np.arange(1, nni_max(uv) + 1)):
        token = nni(net, uv, int(move), no3cycle)
        if token is None:
            continue
        if check_network(net, constraints):
            if logger is not None:
                logger.log(net, f"NNI {int(move)} on edge {uv.number}: kept")
            return token
        token.undo()
        if logger is not None:
            logger.log(net, f"NNI {int(move)} on edge {uv.number}: undone, "
                            "constraint violated")
    return None
