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
Default settings for network searches.
"""

import os
import numpy as np

## --- moves ---
NO_3CYCLE = True
NO_HYBRID_LADDER = False
MAX_HYBRID = None
UNZIP = True

## --- constraints ---
CLADE = 1
SPECIES = 2

## --- randomness ---
SEED = 12345678

## --- logging ---
LOG_DIRECTORY = os.path.join(os.getcwd(), "Log-Output")

def make_rng(seed : int = SEED) -> np.random.Generator:
    """
    Args:
        seed (int, optional): Defaults to SEED. None gives an unseeded
                              generator.

    Returns:
        np.random.Generator: the random generator of a search.
    """
    return np.random.default_rng(seed)
