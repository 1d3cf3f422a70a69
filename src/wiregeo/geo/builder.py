"""Builds the geometry element objects from a scene-graph node tree.

The builder walks the node tree from a given path, looks for the nodes of
each kind of element by name and instantiates the corresponding objects,
bottom-up (wires, then planes, TPCs and cryostats).
"""

from typing import Callable, List

from .detector import (
    AuxDetGeo,
    AuxDetSensitiveGeo,
    Box,
    CryostatGeo,
    OpDetGeo,
    PlaneGeo,
    TPCGeo,
    WireGeo,
)
from .transform import LocalTransformation
from .walker import find_first_volume

__all__ = ["GeometryBuilderStandard"]


class GeometryBuilderStandard:
    """Extracts cryostats and auxiliary detectors following the standard
    volume naming conventions.

    Nodes are matched by the prefix of their name: `volCryostat`, `volTPC`,
    `volTPCPlane`, `volTPCWire`, `volAuxDet` and the optical detector volume
    name. Auxiliary detector sensitive volumes are the nodes whose name
    contains `Sensitive`. Once a node is matched, the search does not descend
    into it.
    """

    def __init__(
        self,
        max_depth: int = 50,
        opdet_name: str = "volOpDetSensitive",
        cryostat_name: str = "volCryostat",
        tpc_name: str = "volTPC",
        active_name: str = "volTPCActive",
        plane_name: str = "volTPCPlane",
        wire_name: str = "volTPCWire",
        aux_det_name: str = "volAuxDet",
        sensitive_tag: str = "Sensitive",
    ):
        """Initialize the builder.

        Parameters
        ----------
        max_depth : int, default 50
            Maximum depth of the paths explored in the tree
        opdet_name : str, default 'volOpDetSensitive'
            Name (prefix) of the optical detector nodes
        cryostat_name : str, default 'volCryostat'
            Name (prefix) of the cryostat nodes
        tpc_name : str, default 'volTPC'
            Name (prefix) of the TPC nodes
        active_name : str, default 'volTPCActive'
            Name (prefix) of the active volume node within a TPC
        plane_name : str, default 'volTPCPlane'
            Name (prefix) of the wire plane nodes
        wire_name : str, default 'volTPCWire'
            Name (prefix) of the wire nodes
        aux_det_name : str, default 'volAuxDet'
            Name (prefix) of the auxiliary detector nodes
        sensitive_tag : str, default 'Sensitive'
            Tag in the name of auxiliary detector sensitive volume nodes
        """
        self.max_depth = max_depth
        self.opdet_name = opdet_name
        self.cryostat_name = cryostat_name
        self.tpc_name = tpc_name
        self.active_name = active_name
        self.plane_name = plane_name
        self.wire_name = wire_name
        self.aux_det_name = aux_det_name
        self.sensitive_tag = sensitive_tag

    # Extraction contract
    def extract_cryostats(self, path: List) -> List[CryostatGeo]:
        """Extracts all the cryostats below a node.

        Parameters
        ----------
        path : List[GeoNode]
            Path from the top of the tree to the node to start from

        Returns
        -------
        List[CryostatGeo]
            Cryostats, in the order they are found
        """
        return self._extract(path, self.is_cryostat_node, self.make_cryostat)

    def extract_auxiliary_detectors(self, path: List) -> List[AuxDetGeo]:
        """Extracts all the auxiliary detectors below a node.

        Parameters
        ----------
        path : List[GeoNode]
            Path from the top of the tree to the node to start from

        Returns
        -------
        List[AuxDetGeo]
            Auxiliary detectors, in the order they are found
        """
        return self._extract(path, self.is_aux_det_node, self.make_aux_det)

    # Node classification
    def is_cryostat_node(self, node) -> bool:
        return node.name.startswith(self.cryostat_name)

    def is_tpc_node(self, node) -> bool:
        return node.name.startswith(self.tpc_name)

    def is_plane_node(self, node) -> bool:
        return node.name.startswith(self.plane_name)

    def is_wire_node(self, node) -> bool:
        return node.name.startswith(self.wire_name)

    def is_op_det_node(self, node) -> bool:
        return node.name.startswith(self.opdet_name)

    def is_aux_det_node(self, node) -> bool:
        return node.name.startswith(self.aux_det_name)

    def is_aux_det_sensitive_node(self, node) -> bool:
        return self.sensitive_tag in node.name

    # Element factories
    def make_cryostat(self, path: List) -> CryostatGeo:
        """Builds a cryostat, its TPCs and its optical detectors."""
        node = path[-1]
        transform = LocalTransformation.from_path(path)
        tpcs = self._extract(path, self.is_tpc_node, self.make_tpc)
        opdets = self._extract(path, self.is_op_det_node, self.make_op_det)

        return CryostatGeo(
            transform,
            node.volume.shape.half_sizes,
            tpcs,
            opdets,
            node.volume.name,
            self.opdet_name,
        )

    def make_tpc(self, path: List) -> TPCGeo:
        """Builds a TPC and its planes."""
        node = path[-1]
        transform = LocalTransformation.from_path(path)
        half_sizes = node.volume.shape.half_sizes
        tpc_box = Box.from_transform(transform, half_sizes)

        # The planes need the TPC box to orient their normal
        def make_plane(plane_path):
            return self.make_plane(plane_path, tpc_box)

        planes = self._extract(path, self.is_plane_node, make_plane)

        # Active volume, if described
        active_box = None
        active_path = list(path)
        if find_first_volume(self.active_name, active_path):
            active_node = active_path[-1]
            active_transform = LocalTransformation.from_path(active_path)
            active_box = Box.from_transform(
                active_transform, active_node.volume.shape.half_sizes
            )

        return TPCGeo(transform, half_sizes, planes, node.volume.name, active_box)

    def make_plane(self, path: List, tpc_box: Box = None) -> PlaneGeo:
        """Builds a plane and its wires."""
        wires = self._extract(path, self.is_wire_node, self.make_wire)
        transform = LocalTransformation.from_path(path)

        return PlaneGeo.from_node(path[-1], transform, wires, tpc_box)

    def make_wire(self, path: List) -> WireGeo:
        """Builds a wire."""
        return WireGeo.from_node(path[-1], LocalTransformation.from_path(path))

    def make_op_det(self, path: List) -> OpDetGeo:
        """Builds an optical detector."""
        return OpDetGeo.from_node(path[-1], LocalTransformation.from_path(path))

    def make_aux_det(self, path: List) -> AuxDetGeo:
        """Builds an auxiliary detector and its sensitive volumes."""
        sensitive = self._extract(
            path, self.is_aux_det_sensitive_node, self.make_aux_det_sensitive
        )
        transform = LocalTransformation.from_path(path)

        return AuxDetGeo.from_node(path[-1], transform, sensitive)

    def make_aux_det_sensitive(self, path: List) -> AuxDetSensitiveGeo:
        """Builds an auxiliary detector sensitive volume."""
        transform = LocalTransformation.from_path(path)
        return AuxDetSensitiveGeo.from_node(path[-1], transform)

    def _extract(self, path: List, is_object: Callable, make_object: Callable):
        """Collects the objects made from all matching nodes below a path.

        The search is depth first, in daughter order. The start node itself
        is never matched, so that the node an object is being built from is
        not matched again.

        Parameters
        ----------
        path : List[GeoNode]
            Path to the node to start from
        is_object : Callable
            Function which tells whether a node is an object to make
        make_object : Callable
            Function which makes an object from the path to its node

        Returns
        -------
        list
            Objects, in the order their nodes are found
        """
        result = []
        path = list(path)

        def visit():
            if len(path) > self.max_depth:
                return
            node = path[-1]
            for i in range(node.num_daughters):
                path.append(node.daughter(i))
                if is_object(path[-1]):
                    result.append(make_object(list(path)))
                else:
                    visit()
                path.pop()

        visit()

        return result
