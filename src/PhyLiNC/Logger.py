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
Module that keeps track of the networks visited by a search, for debugging
sequences of rearrangements.

Release Version: 1.0.0

Author: Mark Kessler
"""

from __future__ import annotations
import base64
import os
from io import BytesIO
import webbrowser
import networkx as nx
import matplotlib.pyplot as plt
from lxml.html import builder as E
import lxml.html
from .Network import Network
from .Newick import write_topology
from . import SearchSettings

class MoveLogger:
    """
    Class that logs networks in html formatting, for tracking the state of a
    network across a series of moves and undos.
    """

    def __init__(self, id : int = 0) -> None:
        """
        Initialize a logger instance with an integer ID value (on user to make
        it unique).

        Args:
            id (int, optional): A unique id for this logger instance.
                                Defaults to 0.
        """
        self.networkx_objs : list[nx.MultiDiGraph] = []
        self.newicks : list[str] = []
        self.comments : list[str] = []
        self.id : int = id

    def __len__(self) -> int:
        return len(self.comments)

    def log(self, net : Network, comment : str = "") -> None:
        """
        Log a snapshot of a network, and optionally attach a comment to it
        (such as the move that was applied to it).

        Args:
            net (Network): A Network
            comment (str, optional): Context for the snapshot. Defaults to "".
        """
        self.networkx_objs.append(net.to_networkx())
        self.newicks.append(write_topology(net))
        self.comments.append(comment)

    def _render(self, G : nx.MultiDiGraph) -> str:
        """
        Draw a snapshot in topological layers, as a base64 encoded png.
        """
        for layer, nodes in enumerate(nx.topological_generations(G)):
            for node in nodes:
                G.nodes[node]["layer"] = layer
        pos = nx.multipartite_layout(G, subset_key = "layer")
        labels = {node : (data["name"] or str(node))
                  for node, data in G.nodes(data = True)}

        fig, ax = plt.subplots()
        nx.draw_networkx(G, pos = pos, ax = ax, labels = labels)
        ax.set_title("DAG layout in topological order")
        fig.tight_layout()
        tmpfile = BytesIO()
        fig.savefig(tmpfile, format = "png")
        plt.close(fig)
        return base64.b64encode(tmpfile.getvalue()).decode("utf-8")

    def to_html(self, path : str = None, open_browser : bool = False) -> str:
        """
        Generate an html document with every logged network, its newick
        string and its comment.

        Args:
            path (str, optional): Output file. Defaults to
                                  'logout<id>.html' in
                                  SearchSettings.LOG_DIRECTORY.
            open_browser (bool, optional): Open the document in a browser
                                           window. Defaults to False.
        Returns:
            str: the path of the html document.
        """
        if path is None:
            os.makedirs(SearchSettings.LOG_DIRECTORY, exist_ok = True)
            path = os.path.join(SearchSettings.LOG_DIRECTORY,
                                f"logout{self.id}.html")

        entries = []
        for G, newick, comment in zip(self.networkx_objs, self.newicks,
                                      self.comments):
            encoded = self._render(G)
            entries.append(E.DIV(
                E.P(comment),
                E.P(E.CODE(newick)),
                E.IMG(src = f"data:image/png;base64,{encoded}"),
                E.HR()
            ))

        html = E.HTML(
                  E.HEAD(
                    E.TITLE("--------Network Log Output--------")
                  ),
                  E.BODY(
                    E.P("Starting Logs:", style = "font-size: 30pt;"),
                    *entries,
                    E.P("----------End Log Output----------",
                        style = "font-size: 30pt;")
                  )
                )

        with open(path, "wb") as file:
            file.write(lxml.html.tostring(html))

        if open_browser:
            webbrowser.open(path, new = 1)
        return path
