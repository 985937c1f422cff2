"""Tests for the node and link models and the graph's structural queries."""

import pytest
from pydantic import ValidationError
from support import agent, graph, link, node

from flowsim.graph.edge import FlowLink, Port, WorkflowGraph
from flowsim.graph.node import AgentNode, NodeCategory


class TestAgentNode:
    def test_type_key_maps_to_category(self):
        n = AgentNode.model_validate({"name": "Check", "role": "if_else", "type": "logic"})
        assert n.category == NodeCategory.LOGIC
        assert n.is_structural

    def test_category_defaults_to_agent(self):
        assert AgentNode(name="Writer", role="writer").category == NodeCategory.AGENT

    def test_string_tools_become_tool_refs(self):
        n = AgentNode(
            name="Researcher",
            role="data_retriever",
            tools=["vertex_ai_search", {"name": "file_search", "interactive": True}],
        )
        assert n.tool_names == ["vertex_ai_search", "file_search"]
        assert n.tools[1].interactive is True

    def test_null_lists_are_empty(self):
        n = AgentNode.model_validate(
            {"name": "A", "role": "writer", "tools": None, "tasks": None, "description": None}
        )
        assert n.tools == []
        assert n.tasks == []
        assert n.description == ""

    def test_single_task_string(self):
        assert AgentNode(name="A", role="writer", tasks="Draft report").tasks == ["Draft report"]

    def test_designer_metadata_is_kept(self):
        n = AgentNode.model_validate(
            {"name": "A", "role": "writer", "x": 120, "y": 40, "color": "#fff"}
        )
        assert (n.x, n.y) == (120, 40)
        assert n.model_extra == {"color": "#fff"}

    def test_unknown_category_is_rejected(self):
        with pytest.raises(ValidationError):
            AgentNode.model_validate({"name": "A", "role": "writer", "type": "robot"})


class TestFlowLink:
    def test_from_to_aliases(self):
        lnk = FlowLink.model_validate({"from": "A", "to": ["B", "C"]})
        assert lnk.source == "A"
        assert lnk.targets == ["B", "C"]
        assert lnk.port is None

    def test_single_target_string(self):
        assert FlowLink.model_validate({"from": "A", "to": "B"}).targets == ["B"]

    def test_targets_keep_first_occurrence(self):
        assert FlowLink(source="A", targets=["B", "C", "B"]).targets == ["B", "C"]

    @pytest.mark.parametrize("raw,expected", [(True, "true"), (False, "false")])
    def test_boolean_port_from_yaml(self, raw, expected):
        assert FlowLink.model_validate({"from": "A", "to": ["B"], "port": raw}).port == expected

    def test_leaves_through(self):
        lnk = FlowLink(source="A", targets=["B"], port=Port.LOOP)
        assert lnk.leaves_through(None)
        assert lnk.leaves_through("loop")
        assert not lnk.leaves_through("exit")


class TestWorkflowGraph:
    def test_successors_and_predecessors(self):
        g = graph(
            [node("A", role="if_else", type="logic"), agent("B"), agent("C")],
            [link("A", "B", port="true"), link("A", "C", port="false"), link("B", "C")],
        )
        assert g.successors("A") == ["B", "C"]
        assert g.successors("A", Port.TRUE) == ["B"]
        assert g.successors("A", "exit") == []
        assert g.predecessors("C") == ["A", "B"]

    def test_entry_nodes_in_declaration_order(self):
        g = graph([agent("B"), agent("A"), agent("C")], [link("A", "C")])
        assert g.entry_nodes() == ["B", "A"]

    def test_later_duplicate_wins_lookup(self):
        g = graph([agent("A", role="writer"), agent("A", role="data_retriever")], [])
        assert g.get_node("A").role == "data_retriever"
        assert g.get_node("missing") is None

    def test_malformed_flow_is_kept_raw(self):
        g = WorkflowGraph.model_validate({"agents": [{"name": "A", "role": "start"}], "flow": "A"})
        assert g.flow == "A"
        assert not g.has_valid_flow()
        assert g.links == []

    def test_flow_with_invalid_link_is_kept_raw(self):
        g = WorkflowGraph.model_validate({"agents": [], "flow": [{"to": ["B"]}]})
        assert not g.has_valid_flow()

    def test_validate_reports_structural_problems(self):
        g = graph(
            [agent("A"), agent("A"), agent("B")],
            [link("A", "Ghost"), link("B", "A"), FlowLink(source="Nobody", targets=[])],
        )
        problems = g.validate()

        assert "Duplicate node name: 'A'" in problems
        assert "Link #0 references missing target 'Ghost'" in problems
        assert "Link #2 references missing source 'Nobody'" in problems
        assert "Link #2 from 'Nobody' has no targets" in problems

    def test_validate_reports_missing_entry_node(self):
        g = graph([agent("A"), agent("B")], [link("A", "B"), link("B", "A")])
        assert g.validate() == ["Graph has no entry node (every node has an incoming link)"]

    def test_validate_non_list_flow(self):
        g = WorkflowGraph(nodes=[agent("A")], flow={"A": "B"})
        assert g.validate() == ["Flow must be a list of links, got dict"]

    def test_valid_graph_has_no_problems(self):
        g = graph([node("Start"), agent("A")], [link("Start", "A")])
        assert g.validate() == []
