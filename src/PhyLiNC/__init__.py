#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyLiNC --
##  Local Rearrangements of Semidirected Phylogenetic Networks
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##############################################################################

"""
PhyLiNC - nearest neighbor interchanges on semidirected phylogenetic
networks, under clade and species constraints.
"""

# Core data structures
from .Network import Network, Node, Edge, NodeKind, NetworkError, NodeError, \
                     EdgeError

# Parsing and I/O
from .Newick import read_topology, write_topology, NewickParserError
from .NetworkParser import NetworkParser, NexusTemplate, NetworkParserError

# Legality checks
from .GraphUtils import is_descendant, is_connected, problem_4cycle

# Constraints
from .TopologyConstraint import TopologyConstraint, ConstraintType, \
                                ConstraintError, clades_violated, \
                                check_network, add_individuals, \
                                map_individuals, check_network_before_linc

# Moves
from .NetworkMoves import MoveCase, UndoToken, nni_max, nni, nni_swap, \
                          nni_constrained

# Logging
from .Logger import MoveLogger

__version__ = "1.0.0"
