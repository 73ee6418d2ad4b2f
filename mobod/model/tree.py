# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import logging
from typing import Iterator, List, Union

from prettytable import PrettyTable

from mobod.core.constants import Direction, Stage
from mobod.core.errors import TopologyError
from mobod.core.rbd_algorithms import RBDAlgorithms
from mobod.core.transform import Transform
from mobod.model.body import Body
from mobod.model.mobilized_body import MobilizedBody
from mobod.model.mobilizer import Mobilizer, MobilizerType
from mobod.model.motion import Motion


class BodyTree:
    """The directed tree of mobilized bodies, rooted in Ground.

    Nodes live in a list indexed by their mobilized body index; every node is appended after its
    parent, hence ascending index order visits parents before children. Editing the tree bumps its
    topology version and clears the finalized flag: States built before the edit must be realized
    again from the Topology stage once the tree is finalized.
    """

    def __init__(self) -> None:
        self._nodes: List[MobilizedBody] = []
        self.topology_version = 0
        self.is_finalized = False
        self.algorithms: Union[RBDAlgorithms, None] = None
        self._children: List[List[int]] = []
        self._levels: List[List[int]] = []
        self._nodes.append(
            MobilizedBody(
                tree=self,
                index=0,
                parent_index=None,
                default_inboard_frame=Transform.identity(),
                default_outboard_frame=Transform.identity(),
                mobilizer=Mobilizer(MobilizerType.WELD),
                body=Body.ground(),
            )
        )

    @property
    def ground(self) -> MobilizedBody:
        return self._nodes[0]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[MobilizedBody]:
        return iter(self._nodes)

    def __getitem__(self, index: int) -> MobilizedBody:
        index = int(index)
        if not 0 <= index < len(self._nodes):
            raise TopologyError(f"There is no mobilized body with index {index}")
        return self._nodes[index]

    def get_mobilized_body(self, index: int) -> MobilizedBody:
        """the node with the given index, Ground is 0"""
        return self[index]

    def _get_node(self, node: Union[int, MobilizedBody]) -> MobilizedBody:
        if isinstance(node, MobilizedBody) and node.tree is not self:
            raise TopologyError(f"{node} belongs to another tree")
        return self[node]

    def add_body(
        self,
        parent: Union[int, MobilizedBody],
        inboard_frame: Transform,
        outboard_frame: Transform,
        mobilizer: Mobilizer,
        body: Body,
        motion: Union[Motion, None] = None,
    ) -> MobilizedBody:
        """Appends a mobilized body to the tree

        Args:
            parent (Union[int, MobilizedBody]): the parent node or its index
            inboard_frame (Transform): X_PF, the inboard frame F on the parent
            outboard_frame (Transform): X_BM, the outboard frame M on the new body
            mobilizer (Mobilizer): the mobilizer connecting F to M
            body (Body): the new body
            motion (Union[Motion, None], optional): a motion prescribed on the mobilizer. Defaults to None.

        Returns:
            MobilizedBody: the new node
        """
        parent = self._get_node(parent)
        node = MobilizedBody(
            tree=self,
            index=len(self._nodes),
            parent_index=parent.index,
            default_inboard_frame=inboard_frame,
            default_outboard_frame=outboard_frame,
            mobilizer=mobilizer,
            body=body,
            motion=motion,
            level=parent.level + 1,
        )
        self._nodes.append(node)
        self.invalidate_topology()
        return node

    def invalidate_topology(self) -> None:
        self.topology_version += 1
        if self.is_finalized:
            logging.debug(f"Topology changed, version {self.topology_version}")
        self.is_finalized = False
        self.algorithms = None

    def finalize_topology(self) -> None:
        """Validates the tree, caches its connectivity and builds the kinematic recursions"""
        if self.is_finalized:
            return
        children: List[List[int]] = [[] for _ in self._nodes]
        levels: List[List[int]] = []
        for node in self._nodes[1:]:
            if node.parent_index is None or not 0 <= node.parent_index < node.index:
                raise TopologyError(
                    f"Mobilized body {node.index} has parent {node.parent_index}, "
                    "a parent must have a smaller index"
                )
            node.level = self._nodes[node.parent_index].level + 1
            children[node.parent_index].append(node.index)
        for node in self._nodes:
            if node.level == len(levels):
                levels.append([])
            levels[node.level].append(node.index)
        self._children = children
        self._levels = levels
        self.algorithms = RBDAlgorithms(self)
        self.is_finalized = True
        self.print_table()

    def _check_finalized(self) -> None:
        if not self.is_finalized:
            raise TopologyError("The body tree is not finalized")

    def get_children(self, node: Union[int, MobilizedBody]) -> List[MobilizedBody]:
        self._check_finalized()
        return [self._nodes[i] for i in self._children[self._get_node(node).index]]

    def get_levels(self) -> List[List[MobilizedBody]]:
        """the nodes grouped by distance from Ground; nodes of one level are independent of each other"""
        self._check_finalized()
        return [[self._nodes[i] for i in level] for level in self._levels]

    def get_level(self, node: Union[int, MobilizedBody]) -> int:
        return self._get_node(node).level

    def get_parent(self, node: Union[int, MobilizedBody]) -> MobilizedBody:
        return self._get_node(node).get_parent()

    def get_base_mobilized_body(self, node: Union[int, MobilizedBody]) -> MobilizedBody:
        node = self._get_node(node)
        if node.is_ground():
            return node
        while node.parent_index != 0:
            node = self._nodes[node.parent_index]
        return node

    def get_default_q_offsets(self) -> List[int]:
        """the first q index of each node, with quaternions for every ball and free mobilizer"""
        offsets, nq = [], 0
        for node in self._nodes:
            offsets.append(nq)
            nq += node.mobilizer.get_num_q()
        return offsets

    def get_default_u_offsets(self) -> List[int]:
        offsets, nu = [], 0
        for node in self._nodes:
            offsets.append(nu)
            nu += node.mobilizer.get_num_u()
        return offsets

    def realize(self, state, stage: Stage) -> None:
        """Realizes the state through every stage up to the given one"""
        for s in Stage:
            if Stage.EMPTY < s <= stage:
                state.realize(s)

    def print_table(self) -> None:
        table_nodes = PrettyTable(
            ["Idx", "Body", "Mobilizer", "Direction", "Parent", "Level", "nq", "nu"]
        )
        q_offsets = self.get_default_q_offsets()
        u_offsets = self.get_default_u_offsets()
        for node in self._nodes:
            table_nodes.add_row(
                [
                    node.index,
                    node.body.name,
                    node.mobilizer.type.value,
                    Direction(node.mobilizer.direction).name,
                    node.parent_index,
                    node.level,
                    f"{node.mobilizer.get_num_q()} @ {q_offsets[node.index]}",
                    f"{node.mobilizer.get_num_u()} @ {u_offsets[node.index]}",
                ]
            )
        logging.debug(table_nodes)
