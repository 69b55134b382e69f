# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Dict, List

import networkx as nx

from coreason_flow.core.exceptions import GraphIntegrityError
from coreason_flow.core.manifest import Edge, Flow, Node, NodeKind
from coreason_flow.utils.logger import logger


class FlowGraph:
    """
    Read-only graph view of a Flow, built once per run.

    Edges are kept per edge id (a multigraph), and a node's outgoing edges are
    returned in the order they were declared in the flow.
    """

    def __init__(self, flow: Flow, graph: nx.MultiDiGraph) -> None:
        self.flow = flow
        self.graph = graph
        self._nodes: Dict[str, Node] = {node.id: node for node in flow.nodes}
        self._out: Dict[str, List[Edge]] = {node_id: [] for node_id in self._nodes}
        for edge in flow.edges:
            self._out[edge.source].append(edge)

    @classmethod
    def build(cls, flow: Flow) -> "FlowGraph":
        """Builds a frozen MultiDiGraph from the Flow.

        Raises:
            GraphIntegrityError: If node ids repeat or an edge references an unknown node.
        """
        graph = nx.MultiDiGraph(name=flow.name)

        for node in flow.nodes:
            if node.id in graph:
                raise GraphIntegrityError(f"Duplicate node id '{node.id}' in flow '{flow.id}'")
            graph.add_node(node.id, type=node.type)

        for edge in flow.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in graph:
                    raise GraphIntegrityError(
                        f"Edge '{edge.id}' references unknown node '{endpoint}' in flow '{flow.id}'"
                    )
            graph.add_edge(edge.source, edge.target, key=edge.id, edge=edge)

        fg = cls(flow, nx.freeze(graph))
        if fg.has_cycle():
            # Tolerated: the executor never enters a node twice in a run
            logger.warning(f"Flow '{flow.id}' contains a cycle; repeat visits will be skipped")
        return fg

    def node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def triggers(self) -> List[Node]:
        return [node for node in self.flow.nodes if node.kind == NodeKind.TRIGGER]

    def out_edges(self, node_id: str) -> List[Edge]:
        return list(self._out.get(node_id, []))

    def children(self, node_id: str) -> List[str]:
        return [edge.target for edge in self.out_edges(node_id)]

    def is_terminal(self, node_id: str) -> bool:
        return self.graph.out_degree(node_id) == 0

    def has_cycle(self) -> bool:
        return not nx.is_directed_acyclic_graph(self.graph)
