# Copyright 2026 FZI Forschungszentrum Informatik
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#    * Redistributions of source code must retain the above copyright
#      notice, this list of conditions and the following disclaimer.
#
#    * Redistributions in binary form must reproduce the above copyright
#      notice, this list of conditions and the following disclaimer in the
#      documentation and/or other materials provided with the distribution.
#
#    * Neither the name of the FZI Forschungszentrum Informatik nor the names of its
#      contributors may be used to endorse or promote products derived from
#      this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""
Parameters of the compute route tree node.

The parameters are declared in `compute_route_parameters.yaml`, using the
generate_parameter_library layout (type, default_value, description,
validation). Values can be overridden from a ROS-style parameter file and
from keyword overrides, in that order.
"""
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml
from typeguard import typechecked

from compute_route_bt.exceptions import ParameterError

DECLARATION_FILE = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "compute_route_parameters.yaml"
)
DECLARATION_KEY = "compute_route_parameters"

_TYPES = {"string": str, "double": float, "bool": bool, "int": int}


@dataclass
class Params:
    action_name: str
    wait_for_action_server_seconds: float
    fail_if_not_available: bool
    tick_frequency_hz: float
    max_ticks: int

    @property
    def loop_duration(self) -> float:
        return 1.0 / self.tick_frequency_hz


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as yaml_file:
            data = yaml.safe_load(yaml_file)
    except OSError as exc:
        raise ParameterError(f"Cannot read parameter file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ParameterError(f"Invalid YAML in parameter file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParameterError(f"Parameter file {path} does not contain a mapping")
    return data


def load_declaration(path: str = DECLARATION_FILE) -> Dict[str, Dict[str, Any]]:
    declaration = _read_yaml(path).get(DECLARATION_KEY)
    if not isinstance(declaration, dict):
        raise ParameterError(f"{path} has no '{DECLARATION_KEY}' section")
    return declaration


def _parameters_from_file(path: str, node_name: str) -> Dict[str, Any]:
    """Read a flat mapping or a `<node_name>: ros__parameters:` file."""
    data = _read_yaml(path)
    for key in (node_name, "/**"):
        section = data.get(key)
        if isinstance(section, dict) and "ros__parameters" in section:
            return section["ros__parameters"] or {}
    return data


@typechecked
def convert_value(name: str, value: Any, type_name: str) -> Any:
    expected = _TYPES.get(type_name)
    if expected is None:
        raise ParameterError(f"Parameter {name} has unsupported type {type_name}")
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, expected) or (
        expected is int and isinstance(value, bool)
    ):
        raise ParameterError(
            f"Parameter {name} must be of type {type_name}, got {value!r}"
        )
    return value


def validate_value(name: str, value: Any, validation: Dict[str, Any]) -> None:
    for rule, arguments in validation.items():
        if rule == "not_empty<>":
            if len(value) == 0:
                raise ParameterError(f"Parameter {name} must not be empty")
        elif rule == "gt<>":
            if not value > arguments[0]:
                raise ParameterError(f"Parameter {name} must be > {arguments[0]}")
        elif rule == "gt_eq<>":
            if not value >= arguments[0]:
                raise ParameterError(f"Parameter {name} must be >= {arguments[0]}")
        else:
            raise ParameterError(f"Unknown validation {rule} for parameter {name}")


def load_parameters(
    params_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    node_name: str = "compute_route_tree_node",
) -> Params:
    """
    Build :class:`Params` from the declared defaults, `params_file` and `overrides`.

    :raises: ParameterError for unknown parameters, wrong types or values
      failing validation.
    """
    declaration = load_declaration()
    values = {
        name: spec.get("default_value") for name, spec in declaration.items()
    }
    for source in (
        _parameters_from_file(params_file, node_name) if params_file else {},
        overrides or {},
    ):
        unknown = sorted(set(source) - set(declaration))
        if unknown:
            raise ParameterError(f"Unknown parameters: {unknown}")
        values.update(source)

    for name, spec in declaration.items():
        values[name] = convert_value(name, values[name], spec["type"])
        validate_value(name, values[name], spec.get("validation") or {})

    missing = [field.name for field in fields(Params) if field.name not in values]
    if missing:
        raise ParameterError(f"Declaration is missing parameters: {missing}")
    return Params(**{field.name: values[field.name] for field in fields(Params)})
