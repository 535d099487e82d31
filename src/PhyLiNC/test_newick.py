import pytest
from PhyLiNC.Network import Network, NetworkError
from PhyLiNC.Newick import read_topology, write_topology, NewickParserError
from PhyLiNC.GraphUtils import network_is_valid, contain_root_valid


STR_LEVEL1 = "(((S8,S9),(((((S1,S2,S3),S4),(S5)#H1),(#H1,(S6,S7))))#H2)," \
             "(#H2,S10));"
STR_NONTREECHILD = "((((Ag,E))#H3,(#H1:7.159::0.056,((M:0.0)#H2:::0.996," \
                   "(Ak,(#H3:0.08,#H2:0.0::0.004):0.023):0.078):2.49)" \
                   ":2.214):0.026,((Az:2.13,As:2.027):1.697)#H1:0.0::0.944," \
                   "Ap);"
STR_HYBRIDLADDER = "(#H2:::0.2,((C,((B)#H1)#H2:::0.8),(#H1,(A1,A2))),O);"


def _names(net : Network) -> dict[str, int]:
    return {node.name : node.number for node in net.nodes
            if node.name is not None and node.name != ""}


def _edge_numbers(net : Network, name : str) -> list[int]:
    node = [n for n in net.nodes if n.name == name][0]
    return [edge.number for edge in node.edges]


###################
#### ROUND TRIP ###
###################

@pytest.mark.parametrize("newick", [STR_LEVEL1, STR_NONTREECHILD,
                                    STR_HYBRIDLADDER,
                                    "(((A,B),(C,D)),E,F);",
                                    "((A:1.5,B:0.25):2.0,C);"])
def test_write_is_inverse_of_read(newick : str) -> None:
    net = read_topology(newick)
    assert write_topology(net) == newick
    assert network_is_valid(net)


def test_blanks_and_comments_are_skipped() -> None:
    net = read_topology(" ((A, B) [a comment], C) ;\n")
    assert write_topology(net) == "((A,B),C);"


def test_quoted_labels() -> None:
    net = read_topology("(('taxon one',B),C);")
    assert "taxon one" in net.leaf_names()


###################
#### NUMBERING ####
###################

def test_level1_numbering() -> None:
    net = read_topology(STR_LEVEL1)
    names = _names(net)
    assert names["S8"] == 1
    assert names["S9"] == 2
    assert names["S1"] == 3
    assert names["S5"] == 7
    assert names["H1"] == 8
    assert names["S6"] == 9
    assert names["H2"] == 11
    assert names["S10"] == 12
    assert net.root.number == -2
    assert len(net.nodes) == 22
    assert len(net.edges) == 23
    assert net.max_node_number() == 12
    assert net.max_edge_number() == 23

    # the node (S5)#H1 was first numbered -10 and renamed to 8
    with pytest.raises(NetworkError):
        net.node_by_number(-10)
    assert net.edge_by_number(11).get_child().number == 8
    assert net.edge_by_number(11).get_parent().number == -7
    assert net.edge_by_number(13).get_parent().number == -11
    assert net.edge_by_number(20).get_parent() is net.root


def test_hybridladder_numbering() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    names = _names(net)
    assert names["H2"] == 1
    assert names["C"] == 2
    assert names["B"] == 3
    assert names["H1"] == 4
    assert names["O"] == 7
    # a hybrid first read as a reference keeps its number; the edges of the
    # merged internal node come first
    assert _edge_numbers(net, "H2") == [4, 1, 5]
    assert _edge_numbers(net, "H1") == [3, 4, 7]
    assert all(edge.is_child1 for edge in net.edges)
    assert all(edge.nodes[0] is edge.get_child() for edge in net.edges)


def test_root_degree_and_hybrids() -> None:
    net = read_topology(STR_NONTREECHILD)
    assert net.root.degree() == 3
    assert sorted(node.name for node in net.get_hybrids()) == \
           ["H1", "H2", "H3"]
    assert sorted(net.leaf_names()) == ["Ag", "Ak", "Ap", "As", "Az", "E",
                                        "M"]


################
#### GAMMAS ####
################

def test_given_gammas_set_major_edge() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    e1 = net.edge_by_number(1)
    e5 = net.edge_by_number(5)
    assert e1.hybrid and e5.hybrid
    assert (e1.gamma, e1.is_major) == (0.2, False)
    assert (e5.gamma, e5.is_major) == (0.8, True)


def test_default_major_edge_is_above_subtree() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    e4 = net.edge_by_number(4)
    e7 = net.edge_by_number(7)
    assert e4.hybrid and e7.hybrid
    assert e4.is_major and not e7.is_major
    assert e4.gamma is None and e7.gamma is None


def test_missing_gamma_is_complement() -> None:
    net = read_topology("(((A)#H1:::0.25,B),(#H1,C));")
    minor = net.edge_by_number(2)
    reference = [e for e in net.edges if e.hybrid and e is not minor][0]
    assert reference.gamma == 0.75
    assert reference.is_major and not minor.is_major
    # the subtree now hangs below the major parent
    assert write_topology(net) == "((#H1:::0.25,B),((A)#H1:::0.75,C));"


def test_tree_edges_have_gamma_one() -> None:
    net = read_topology(STR_LEVEL1)
    for edge in net.edges:
        if not edge.hybrid:
            assert edge.gamma == 1.0
            assert edge.is_major


def test_gamma_on_tree_edge_warns() -> None:
    with pytest.warns(UserWarning):
        net = read_topology("((A:1.0::0.3,B),C);")
    assert net.edge_by_number(1).gamma == 1.0


def test_lengths_are_read() -> None:
    net = read_topology("((A:1.5,B:0.25):2.0,C);")
    assert net.edge_by_number(1).length == 1.5
    assert net.edge_by_number(2).length == 0.25
    assert net.edge_by_number(3).length == 2.0
    assert net.edge_by_number(4).length is None


######################
#### CONTAIN ROOT ####
######################

def test_contain_root_below_hybrids() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    assert contain_root_valid(net)
    blocked = sorted(e.number for e in net.edges if not e.contain_root)
    assert blocked == [3, 4]

    net = read_topology(STR_LEVEL1)
    blocked = sorted(e.number for e in net.edges if not e.contain_root)
    # below H1: edge 10; below H2: everything from edge 18 down
    assert 10 in blocked
    assert 18 in blocked
    assert 11 in blocked
    assert 19 not in blocked
    assert 20 not in blocked


################
#### ERRORS ####
################

@pytest.mark.parametrize("newick", [
    "((A,B),C)",                           # no ';'
    "A;",                                  # not a subtree
    "((A,B),A);",                          # duplicate leaf
    "((A,B),C);D",                         # trailing characters
    "((A,),C);",                           # empty label
    "((A:-1.0,B),C);",                     # negative length
    "((A,B),C)[comment;",                  # unterminated comment
    "(#H1,(#H1,B));",                      # hybrid without subtree
    "(((A)#H1,B),C);",                     # hybrid with one parent
    "(((A)#H1,(B)#H1),(#H1,C));",          # two subtrees
    "(((A)#H1:::0.7,B),(#H1:::0.7,C));",   # gammas do not sum to 1
])
def test_malformed_newick(newick : str) -> None:
    with pytest.raises(NewickParserError):
        read_topology(newick)
