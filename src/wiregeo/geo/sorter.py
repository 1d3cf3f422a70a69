"""Standard ordering of the geometry elements.

The sorter decides the final numbering of every element of the geometry.
All methods sort their input list in place.
"""

__all__ = ["GeoObjectSorterStandard"]


class GeoObjectSorterStandard:
    """Sorts geometry elements following the standard conventions.

    - cryostats and TPCs by increasing x of their center;
    - planes by decreasing x of their center (the plane closest to a TPC
      lying on the negative x side of the detector comes first);
    - wires and optical detectors by increasing z, then y of their center;
    - auxiliary detectors and their sensitive volumes by name, then center.
    """

    def sort_aux_dets(self, aux_dets):
        aux_dets.sort(key=lambda det: (det.name, *_zyx(det.center)))

    def sort_aux_det_sensitive(self, sensitive):
        sensitive.sort(key=lambda vol: (vol.name, *_zyx(vol.center)))

    def sort_cryostats(self, cryostats):
        cryostats.sort(key=lambda cryo: tuple(cryo.center))

    def sort_tpcs(self, tpcs):
        tpcs.sort(key=lambda tpc: tuple(tpc.center))

    def sort_planes(self, planes):
        planes.sort(key=lambda plane: -plane.box_center[0])

    def sort_wires(self, wires):
        wires.sort(key=lambda wire: _zyx(wire.center))

    def sort_op_dets(self, opdets):
        opdets.sort(key=lambda opdet: _zyx(opdet.center))


def _zyx(position):
    return float(position[2]), float(position[1]), float(position[0])
