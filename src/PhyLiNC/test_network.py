import pytest
from PhyLiNC.Network import Network, Node, Edge, NodeKind, NetworkError, \
                            NodeError, EdgeError, edge_relation, \
                            get_major_parent_edge, get_minor_parent_edge, \
                            ORIGIN, PARENT, CHILD
from PhyLiNC.Newick import read_topology, write_topology


STR_HYBRIDLADDER = "(#H2:::0.2,((C,((B)#H1)#H2:::0.8),(#H1,(A1,A2))),O);"


def build_cherry() -> Network:
    """
    Build ((A,B)) by hand: root -2, leaves 1 and 2.
    """
    net = Network()
    root = Node(-2)
    a = Node(1, leaf = True, name = "A")
    b = Node(2, leaf = True, name = "B")
    for node in (root, a, b):
        net.add_node(node)
    for number, child in ((1, a), (2, b)):
        edge = Edge(number)
        edge.nodes = [child, root]
        child.edges.append(edge)
        root.edges.append(edge)
        net.add_edge(edge)
    net.root = root
    return net


def test_build_by_hand() -> None:
    net = build_cherry()
    assert write_topology(net) == "(A,B);"
    assert net.newick() == "(A,B);"
    assert [node.number for node in net.preorder()] == [-2, 1, 2]
    assert net.max_node_number() == 2
    assert net.max_edge_number() == 2
    assert Network().max_node_number() == 0

    with pytest.raises(NetworkError):
        net.add_node(Node(1))
    with pytest.raises(NetworkError):
        net.add_edge(Edge(2))


def test_lookups() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    assert net.node_by_number(1).get_name() == "H2"
    assert net.has_node_named("A1").leaf
    assert net.has_node_named("Z") is None
    assert net.get_nodes() is net.nodes
    assert net.get_edges() is net.edges
    with pytest.raises(NetworkError):
        net.edge_by_number(100)


def test_node_kinds() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    assert net.node_kind(net.root) == NodeKind.ROOT
    assert net.node_kind(net.node_by_number(1)) == NodeKind.HYBRID
    assert net.node_kind(net.node_by_number(2)) == NodeKind.LEAF
    assert net.node_kind(net.node_by_number(-3)) == NodeKind.TREE


def test_parents_and_children() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    h2 = net.node_by_number(1)
    assert [e.number for e in h2.parent_edges()] == [1, 5]
    assert [e.number for e in h2.child_edges()] == [4]
    assert [n.number for n in h2.get_parents()] == [-2, -4]
    assert [n.number for n in h2.get_children()] == [4]
    assert net.root.parent_edges() == []

    assert get_major_parent_edge(h2).number == 5
    assert get_minor_parent_edge(h2).number == 1
    assert get_major_parent_edge(net.node_by_number(2)).number == 2
    with pytest.raises(NodeError):
        get_minor_parent_edge(net.node_by_number(2))
    with pytest.raises(NodeError):
        get_major_parent_edge(net.root)


def test_edge_relation() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    h1 = net.node_by_number(4)
    e3, e4, e7 = (net.edge_by_number(n) for n in (3, 4, 7))
    assert edge_relation(e4, h1, e4) == ORIGIN
    assert edge_relation(e7, h1, e4) == PARENT
    assert edge_relation(e3, h1, e4) == CHILD


def test_edge_direction_and_values() -> None:
    net = read_topology("((A:1.0,B),C);")
    edge = net.edge_by_number(1)
    a = edge.get_child()
    assert a.name == "A"
    assert edge.other_node(a) is edge.get_parent()
    assert edge.other_node(edge.get_parent()) is a
    with pytest.raises(EdgeError):
        edge.other_node(net.root)

    edge.is_child1 = False
    assert edge.get_child() is not a
    assert edge.get_parent() is a
    edge.is_child1 = True

    assert edge.get_length() == 1.0
    edge.set_length(2.5)
    assert edge.get_length() == 2.5
    edge.set_length(None)
    assert edge.get_length() is None
    with pytest.raises(EdgeError):
        edge.set_length(-1.0)

    assert edge.get_gamma() == 1.0
    edge.set_gamma(0.4)
    assert edge.get_gamma() == 0.4
    with pytest.raises(EdgeError):
        edge.set_gamma(1.5)


def test_remove_edge_and_node() -> None:
    net = build_cherry()
    edge = net.edge_by_number(2)
    b = edge.get_child()
    net.remove_edge(edge)
    assert edge not in net.root.edges
    assert b.edges == []
    with pytest.raises(NetworkError):
        net.preorder()
    net.remove_node(b)
    assert [node.number for node in net.preorder()] == [-2, 1]


def test_preorder_is_cached_and_invalidated() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    order = net.preorder()
    assert order is net.preorder()
    assert order[0] is net.root
    position = {node.number : i for i, node in enumerate(order)}
    for edge in net.edges:
        assert position[edge.get_parent().number] < \
               position[edge.get_child().number]
    net.invalidate_preorder()
    assert net.preorder() is not order

    with pytest.raises(NetworkError):
        Network().preorder()


def test_to_networkx() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    G = net.to_networkx()
    assert G.number_of_nodes() == len(net.nodes)
    assert G.number_of_edges() == len(net.edges)
    assert G.has_edge(-2, 1, key = 1)
    assert G.edges[-2, 1, 1]["gamma"] == 0.2
    assert G.nodes[1]["hybrid"]
    assert G.nodes[2]["name"] == "C"


def test_duplicate_is_independent() -> None:
    net = read_topology(STR_HYBRIDLADDER)
    copy = net.duplicate()
    assert write_topology(copy) == STR_HYBRIDLADDER
    copy.edge_by_number(1).gamma = 0.3
    copy.edge_by_number(5).gamma = 0.7
    assert net.edge_by_number(1).gamma == 0.2
    assert copy.node_by_number(1) is not net.node_by_number(1)
