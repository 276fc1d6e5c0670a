from __future__ import annotations

from pydantic import NonNegativeInt

# Order matters for pydantic's smart union and for isinstance checks: bool is
# a subclass of int.
DeviceValue = bool | int | str

Device = dict[str, DeviceValue]
DeviceTable = dict[NonNegativeInt, Device]

Scalar = bool | int | float | str
FlatConfig = dict[str, Scalar]
