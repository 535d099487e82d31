import pytest
from PhyLiNC.Newick import read_topology, write_topology
from PhyLiNC.NetworkParser import NetworkParser, NexusTemplate, \
                                  NetworkParserError


STR_LEVEL1 = "(((S8,S9),(((((S1,S2,S3),S4),(S5)#H1),(#H1,(S6,S7))))#H2)," \
             "(#H2,S10));"
STR_HYBRIDLADDER = "(#H2:::0.2,((C,((B)#H1)#H2:::0.8),(#H1,(A1,A2))),O);"


def test_template_then_parse(tmp_path) -> None:
    template = NexusTemplate()
    template.add(read_topology(STR_LEVEL1))
    template.add(read_topology(STR_HYBRIDLADDER), "ladder")
    assert template.tax >= {"S1", "S10", "A1", "O"}

    path = template.generate(tmp_path, "networks.nex")
    assert path.exists()
    text = path.read_text(encoding = "utf8")
    assert text.startswith("#NEXUS")
    assert "TAXLABELS\n" in text
    assert "TAXALABELS" not in text
    assert "Tree net1 = " + STR_LEVEL1 in text
    assert "Tree ladder = " + STR_HYBRIDLADDER in text

    parser = NetworkParser(str(path))
    networks = parser.get_all_networks()
    assert len(networks) == 2
    assert parser.get_network(0) is networks[0]
    assert write_topology(networks[0]) == STR_LEVEL1
    assert write_topology(networks[1]) == STR_HYBRIDLADDER
    assert parser.name_of_network(networks[0]) == "net1"
    assert parser.name_of_network(networks[1]) == "ladder"


def test_generate_does_not_overwrite(tmp_path) -> None:
    template = NexusTemplate()
    template.add(read_topology("((A,B),C);"))
    template.generate(tmp_path, "tree.nex")
    with pytest.raises(NetworkParserError):
        template.generate(tmp_path, "tree.nex")


def test_missing_file(tmp_path) -> None:
    with pytest.raises(NetworkParserError):
        NetworkParser(str(tmp_path / "missing.nex"))


def test_malformed_network(tmp_path) -> None:
    path = tmp_path / "bad.nex"
    path.write_text("#NEXUS\n\nBEGIN TREES;\n"
                    "Tree bad = ((A,B),A);\n"
                    "END;\n", encoding = "utf8")
    with pytest.raises(NetworkParserError):
        NetworkParser(str(path))
