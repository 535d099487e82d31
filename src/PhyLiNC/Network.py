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

Graph primitives for semidirected phylogenetic networks.

Nodes and edges reference each other (a node holds an ordered list of its
incident edges, an edge holds an ordered pair of nodes), while the Network
owns every node and edge. Edge direction is stored in one place only, the
'is_child1' flag of an edge. Rearrangements relink these objects in place,
so the position of an edge inside a node's edge list (and of a node inside an
edge's node pair) is meaningful and stable.
"""

from __future__ import annotations
import copy
from enum import Enum
import networkx as nx

#############################
#### EXCEPTION SPECIFICS ####
#############################

class NetworkError(Exception):
    """
    This exception is raised when a network is malformed,
    or if a network operation fails.
    """
    def __init__(self, message = "Error with a Network Instance"):
        self.message = message
        super().__init__(self.message)

class NodeError(Exception):
    """
    This exception is raised when a Node operation fails.
    """
    def __init__(self, message = "Error in Node Class"):
        super().__init__(message)

class EdgeError(Exception):
    """
    This exception is raised when an Edge operation fails.
    """
    def __init__(self, message = "Error in Edge Class"):
        super().__init__(message)

##########################
#### HELPER FUNCTIONS ####
##########################

# Relations of an edge with respect to a node, see 'edge_relation'
ORIGIN = "origin"
PARENT = "parent"
CHILD = "child"

def edge_relation(edge : Edge, node : Node, origin : Edge) -> str:
    """
    Describe how 'edge' relates to 'node', relative to a focus edge 'origin'
    that is also incident to 'node'.

    Args:
        edge (Edge): an edge incident to 'node'
        node (Node): a node
        origin (Edge): the focus edge

    Returns:
        str: ORIGIN if 'edge' is the focus edge, PARENT if 'edge' is a parent
             edge of 'node', CHILD otherwise.
    """
    if edge is origin:
        return ORIGIN
    if edge.get_child() is node:
        return PARENT
    return CHILD

def get_major_parent_edge(node : Node) -> Edge:
    """
    Gets the major parent edge of a node. For a tree node, this is simply its
    parent edge.

    Raises:
        NodeError: if the node has no major parent edge.
    Args:
        node (Node): any node that is not the root.

    Returns:
        Edge: the parent edge of 'node' that is marked as major.
    """
    for edge in node.edges:
        if edge.get_child() is node and edge.is_major:
            return edge
    raise NodeError(f"node {node.number} has no major parent edge")

def get_minor_parent_edge(node : Node) -> Edge:
    """
    Gets the minor parent edge of a hybrid node.

    Raises:
        NodeError: if the node has no minor parent edge.
    Args:
        node (Node): a hybrid node.

    Returns:
        Edge: the parent edge of 'node' that is not marked as major.
    """
    for edge in node.edges:
        if edge.get_child() is node and not edge.is_major:
            return edge
    raise NodeError(f"node {node.number} has no minor parent edge")

##########################
#### NODES AND EDGES #####
##########################

class NodeKind(Enum):
    """
    Role of a node in a rooted network. Derived from the node's flags, its
    degree and the network root; see Network.node_kind.
    """
    LEAF = "leaf"
    TREE = "tree"
    HYBRID = "hybrid"
    ROOT = "root"

class Node:
    """
    Node of a phylogenetic network. A node only knows its incident edges, in
    a fixed order; parent/child relations are read off the edges.
    """

    def __init__(self, number : int, leaf : bool = False,
                 name : str = "", hybrid : bool = False) -> None:
        """
        Initialize a node with a number, a name, and its leaf/hybrid flags.

        Args:
            number (int): Stable identifier. Negative for unnamed internal
                          nodes, positive for leaves and hybrid nodes.
            leaf (bool, optional): Leaf flag. Defaults to False.
            name (str, optional): Node label. Hybrid nodes are named without
                                  the leading '#'. Defaults to "".
            hybrid (bool, optional): Flag that marks a node as a hybrid
                                     (reticulation) node. Defaults to False.
        """
        self.number : int = number
        self.name : str = name
        self.leaf : bool = leaf
        self.hybrid : bool = hybrid
        self.edges : list[Edge] = []

    def __repr__(self) -> str:
        return f"Node({self.number}, name={self.name!r}, " \
               f"hybrid={self.hybrid}, leaf={self.leaf})"

    def get_name(self) -> str:
        """
        Returns the name of the node

        Returns:
            str: Node label.
        """
        return self.name

    def degree(self) -> int:
        """
        Returns:
            int: the number of edges incident to this node.
        """
        return len(self.edges)

    def parent_edges(self) -> list[Edge]:
        """
        Get the edges for which this node is the child, in edge list order.

        Returns:
            list[Edge]: 0 edges for the root, 1 for a tree node, 2 for a hybrid.
        """
        return [edge for edge in self.edges if edge.get_child() is self]

    def child_edges(self) -> list[Edge]:
        """
        Get the edges for which this node is the parent, in edge list order.

        Returns:
            list[Edge]: the child edges of this node.
        """
        return [edge for edge in self.edges if edge.get_parent() is self]

    def get_parents(self) -> list[Node]:
        """
        Returns:
            list[Node]: the parent nodes of this node.
        """
        return [edge.get_parent() for edge in self.parent_edges()]

    def get_children(self) -> list[Node]:
        """
        Returns:
            list[Node]: the child nodes of this node.
        """
        return [edge.get_child() for edge in self.child_edges()]

class Edge:
    """
    Edge of a phylogenetic network.

    The pair 'nodes' is unordered with respect to direction: 'is_child1'
    states whether nodes[0] is the child. Tree edges carry gamma = 1 and are
    major. Hybrid edges point into a hybrid node and carry the inheritance
    probability of that parent (None if unknown).
    """

    def __init__(self, number : int, length : float = None) -> None:
        """
        Create an edge that is not yet attached to any node.

        Args:
            number (int): Stable identifier.
            length (float, optional): Branch length. Defaults to None
                                      (missing).
        """
        self.number : int = number
        self.nodes : list[Node] = []
        self.is_child1 : bool = True
        self.hybrid : bool = False
        self.is_major : bool = True
        self.contain_root : bool = True
        self.gamma : float = 1.0
        self.length : float = length

    def __repr__(self) -> str:
        nums = [node.number for node in self.nodes]
        return f"Edge({self.number}, nodes={nums}, " \
               f"is_child1={self.is_child1}, hybrid={self.hybrid})"

    def get_child(self) -> Node:
        """
        Returns:
            Node: the child node of this edge.
        """
        return self.nodes[0] if self.is_child1 else self.nodes[1]

    def get_parent(self) -> Node:
        """
        Returns:
            Node: the parent node of this edge.
        """
        return self.nodes[1] if self.is_child1 else self.nodes[0]

    def other_node(self, node : Node) -> Node:
        """
        Get the endpoint of this edge that is not 'node'.

        Raises:
            EdgeError: if 'node' is not an endpoint of this edge.
        Args:
            node (Node): one endpoint of this edge.

        Returns:
            Node: the other endpoint.
        """
        if self.nodes[0] is node:
            return self.nodes[1]
        if self.nodes[1] is node:
            return self.nodes[0]
        raise EdgeError(f"node {node.number} is not attached to edge "
                        f"{self.number}")

    def set_length(self, length : float) -> None:
        """
        Sets the branch length of this edge.

        Args:
            length (float): a branch length value (>=0), or None if missing.
        """
        if length is not None and length < 0:
            raise EdgeError("Branch lengths must be non-negative")
        self.length = length

    def get_length(self) -> float:
        """
        Returns:
            float: branch length, None if missing.
        """
        return self.length

    def set_gamma(self, gamma : float) -> None:
        """
        Set the inheritance probability of this edge. Only meaningful for
        hybrid edges.

        Args:
            gamma (float): A probability (between 0 and 1).
        """
        if gamma is not None and not 0 <= gamma <= 1:
            raise EdgeError("Inheritance probabilities must be in [0, 1]")
        self.gamma = gamma

    def get_gamma(self) -> float:
        """
        Gets the inheritance probability for this edge.

        Returns:
            float: A probability (between 0 and 1), None if unknown.
        """
        return self.gamma

#########################
#### NETWORK CLASSES ####
#########################

class Network:
    """
    A rooted, possibly reticulate, phylogenetic network.

    The network owns its nodes and edges in two lists (node and edge arenas)
    and indexes them by number. It also keeps a cached preorder (topological
    order from the root), which must be invalidated after any structural
    change. Everything that mutates connectivity in this package calls
    'invalidate_preorder'.
    """

    def __init__(self) -> None:
        """
        Initialize an empty network.
        """
        self.nodes : list[Node] = []
        self.edges : list[Edge] = []
        self.root : Node = None
        self._node_map : dict[int, Node] = {}
        self._edge_map : dict[int, Edge] = {}
        self._preorder : list[Node] = None

    def add_node(self, node : Node) -> None:
        """
        Add a node to the network.

        Raises:
            NetworkError: if another node with the same number is present.
        Args:
            node (Node): a new node.
        """
        if node.number in self._node_map:
            raise NetworkError(f"node number {node.number} already in use")
        self.nodes.append(node)
        self._node_map[node.number] = node
        self.invalidate_preorder()

    def add_edge(self, edge : Edge) -> None:
        """
        Add an edge to the network. The edge should already be attached to its
        nodes.

        Raises:
            NetworkError: if another edge with the same number is present.
        Args:
            edge (Edge): a new edge.
        """
        if edge.number in self._edge_map:
            raise NetworkError(f"edge number {edge.number} already in use")
        self.edges.append(edge)
        self._edge_map[edge.number] = edge
        self.invalidate_preorder()

    def remove_node(self, node : Node) -> None:
        """
        Remove a node from the network. Its edges are left untouched.

        Args:
            node (Node): a node in the network.
        """
        self.nodes.remove(node)
        del self._node_map[node.number]
        self.invalidate_preorder()

    def remove_edge(self, edge : Edge) -> None:
        """
        Remove an edge from the network and detach it from its nodes.

        Args:
            edge (Edge): an edge in the network.
        """
        for node in edge.nodes:
            if edge in node.edges:
                node.edges.remove(edge)
        self.edges.remove(edge)
        del self._edge_map[edge.number]
        self.invalidate_preorder()

    def node_by_number(self, number : int) -> Node:
        """
        Raises:
            NetworkError: if there is no such node.
        Args:
            number (int): a node number.

        Returns:
            Node: the node with that number.
        """
        try:
            return self._node_map[number]
        except KeyError:
            raise NetworkError(f"no node numbered {number}")

    def edge_by_number(self, number : int) -> Edge:
        """
        Raises:
            NetworkError: if there is no such edge.
        Args:
            number (int): an edge number.

        Returns:
            Edge: the edge with that number.
        """
        try:
            return self._edge_map[number]
        except KeyError:
            raise NetworkError(f"no edge numbered {number}")

    def has_node_named(self, name : str) -> Node:
        """
        Check whether the network has a node with a certain name.

        Args:
            name (str): the name to search for.

        Returns:
            Node: the first node with that name, None if there is none.
        """
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def get_nodes(self) -> list[Node]:
        """
        Returns:
            list[Node]: all nodes, in insertion order.
        """
        return self.nodes

    def get_edges(self) -> list[Edge]:
        """
        Returns:
            list[Edge]: all edges, in insertion order.
        """
        return self.edges

    def get_leaves(self) -> list[Node]:
        """
        Returns:
            list[Node]: the leaves of the network, in insertion order.
        """
        return [node for node in self.nodes if node.leaf]

    def get_hybrids(self) -> list[Node]:
        """
        Returns:
            list[Node]: the hybrid nodes of the network.
        """
        return [node for node in self.nodes if node.hybrid]

    def leaf_names(self) -> list[str]:
        """
        Returns:
            list[str]: the names of all leaves.
        """
        return [node.name for node in self.get_leaves()]

    def max_node_number(self) -> int:
        """
        Returns:
            int: the largest node number in use (0 for an empty network).
        """
        return max([0] + [node.number for node in self.nodes])

    def max_edge_number(self) -> int:
        """
        Returns:
            int: the largest edge number in use (0 for an empty network).
        """
        return max([0] + [edge.number for edge in self.edges])

    def node_kind(self, node : Node) -> NodeKind:
        """
        Classify a node.

        Args:
            node (Node): a node in this network.

        Returns:
            NodeKind: ROOT for the network root, LEAF for leaves, HYBRID for
                      reticulation nodes and TREE otherwise.
        """
        if node is self.root:
            return NodeKind.ROOT
        if node.leaf:
            return NodeKind.LEAF
        if node.hybrid:
            return NodeKind.HYBRID
        return NodeKind.TREE

    def invalidate_preorder(self) -> None:
        """
        Drop the cached preorder. Call after any change of connectivity or
        edge direction.
        """
        self._preorder = None

    def preorder(self) -> list[Node]:
        """
        Nodes in topological order from the root: a node is listed after all
        its parents. The order is cached until 'invalidate_preorder' is called.

        Raises:
            NetworkError: if the network has no root, or if some nodes cannot
                          be reached (disconnected graph or directed cycle).
        Returns:
            list[Node]: the preorder.
        """
        if self._preorder is not None:
            return self._preorder
        if self.root is None:
            raise NetworkError("network has no root")

        order : list[Node] = []
        visited_parents : dict[Node, int] = {}
        stack : list[Node] = [self.root]
        while stack:
            node = stack.pop()
            order.append(node)
            # push children in reverse so that the first child is visited first
            for edge in reversed(node.child_edges()):
                child = edge.get_child()
                visited_parents[child] = visited_parents.get(child, 0) + 1
                if visited_parents[child] == len(child.parent_edges()):
                    stack.append(child)

        if len(order) != len(self.nodes):
            raise NetworkError("preorder does not reach every node: the network "
                               "is disconnected or has a directed cycle")
        self._preorder = order
        return order

    def newick(self) -> str:
        """
        Returns:
            str: the extended newick string of this network.
        """
        from .Newick import write_topology
        return write_topology(self)

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Convert this network into a networkx multigraph, keyed by node number.
        Parallel edges (2-cycles) are kept.

        Returns:
            nx.MultiDiGraph: the directed graph, edges pointing parent to child.
        """
        G = nx.MultiDiGraph()
        for node in self.nodes:
            G.add_node(node.number, name = node.name, hybrid = node.hybrid,
                       leaf = node.leaf)
        for edge in self.edges:
            G.add_edge(edge.get_parent().number, edge.get_child().number,
                       key = edge.number, hybrid = edge.hybrid,
                       gamma = edge.gamma, length = edge.length)
        return G

    def duplicate(self) -> Network:
        """
        Deep copy this network. Independent searches must work on
        independent copies.

        Returns:
            Network: an identical, independent, network.
        """
        return copy.deepcopy(self)
