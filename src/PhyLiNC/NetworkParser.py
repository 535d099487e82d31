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
Approved for Release : Most Likely. Further Testing Needed. Fully Documented
"""

import os
from pathlib import Path
from nexus import NexusReader
from .Network import Network
from .Newick import read_topology, write_topology, NewickParserError

#####################
#### Error Class ####
#####################

class NetworkParserError(Exception):
    """
    Error that is raised whenever an input file contains issues that disallow
    a proper parse of a network.
    """
    def __init__(self, message : str = "Something went wrong "
                                        "parsing a network") -> None:
        """
        Initialize the error with a message.

        Args:
            message (str, optional): Custom error message. Defaults to
                                     "Something went wrong parsing a network".
        """
        self.message = message
        super().__init__(self.message)

#########################
#### NEXUS READING ######
#########################

class NetworkParser:
    """
    Class that parses the networks of the TREES block of a nexus file.
    """

    def __init__(self, filename : str) -> None:
        """
        Initialize the parser with a nexus file, and parse it.

        Raises:
            NetworkParserError: If the NexusReader library cannot parse the
                                file, if it has no trees, or if a network
                                string is malformed.
        Args:
            filename (str): the path to the nexus file to be parsed.
        Returns:
            N/A
        """
        self.filename = filename

        try:
            self.reader = NexusReader.from_file(filename)
        except Exception as err:
            raise NetworkParserError(f"NexusReader library could not find "
                                      f"or parse {filename}: {err}") from err

        #List of all parsed networks
        self.networks : list[Network] = []

        # Map from parsed networks to their names (the label that appears
        # before the newick string in a nexus file).
        self.name_2_net : dict[Network, str] = {}

        self.parse()

    def parse(self) -> None:
        """
        Using the reader object, iterate through each of the trees
        defined in the file and store them as Network objects.
        """
        trees = self.reader.trees
        if trees is None or len(trees.trees) == 0:
            raise NetworkParserError("There are no trees listed in the file")
        if trees.translators:
            trees.detranslate()

        for t in trees.trees:
            # grab the right hand side of the tree definition for
            # the network, and the left for the name
            head, _, newick_str = str(t).partition("=")
            name = head.split()[-1] if head.split() else ""
            newick_str = newick_str.strip()
            if not newick_str.endswith(";"):
                newick_str += ";"
            try:
                new_network = read_topology(newick_str)
            except NewickParserError as err:
                raise NetworkParserError(f"Network '{name}' could not be "
                                         f"parsed: {err.message}") from err

            self.networks.append(new_network)
            self.name_2_net[new_network] = name

    def get_network(self, index : int) -> Network:
        """
        Retrieves the network at index 'index' in the networks field

        Args:
            index (int): index

        Returns:
            Network: a parsed Network
        """
        return self.networks[index]

    def get_all_networks(self) -> list[Network]:
        """
        Retrieves the network array field

        Returns:
            list[Network] : the set of parsed networks
        """
        return self.networks

    def name_of_network(self, network : Network) -> str:
        """
        Given a parsed network, get the label for it.

        Args:
            network (Network): a network parsed from this NetworkParser
        Returns:
            str: Network label, as appears in the nexus file.
        """
        return self.name_2_net[network]

#########################
#### NEXUS WRITING ######
#########################

class NexusTemplate:
    """
    Class that generates a nexus file with a TAXA and a TREES block.
    """

    def __init__(self) -> None:
        # Lines of the "TREES" block, ie: "Tree net1 = (A, B)C;"
        self.networks : list[str] = []

        # Taxa labels present across all networks
        self.tax : set[str] = set()

        #Counter for network indices
        self.net_index : int = 1

    def add(self, net : Network, name : str = None) -> None:
        """
        Create a new line in the "TREES" block.

        Args:
            net (Network): The next network to be added.
            name (str, optional): Its label. Defaults to "net<index>".
        """
        if name is None:
            name = f"net{self.net_index}"
        self.networks.append(f"Tree {name} = {write_topology(net)}\n")
        self.net_index += 1
        self.tax = self.tax.union(net.leaf_names())

    def generate(self, loc : Path | str, end_name : str) -> Path:
        """
        Create a nexus file at "<loc>/<end_name>", end_name should include .nex
        extension.

        Raises:
            NetworkParserError: If the file already exists.
        Args:
            loc (Path | str): Directory to save the file to.
            end_name (str): The new file name.
        Returns:
            Path: the path of the new file.
        """
        new_file_path = Path(loc).absolute() / end_name
        if os.path.exists(new_file_path):
            raise NetworkParserError("File already exists in this location")

        with open(new_file_path, "w", encoding = "utf8") as fp:
            fp.write("#NEXUS\n\nBEGIN TAXA;\n")
            fp.write(f"DIMENSIONS NTAX={len(self.tax)};\n")
            fp.write("TAXLABELS\n")
            for taxa in sorted(self.tax):
                fp.write(f"{taxa}\n")
            fp.write(";\nEND;\n\nBEGIN TREES;\n")
            for line in self.networks:
                fp.write(line)
            fp.write("END;\n")
        return new_file_path
