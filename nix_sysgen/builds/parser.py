"""Parsing of `nix build --json` output.

Nix prints a JSON array with one record per installable built:

    [{"drvPath": "/nix/store/...drv", "outputs": {"out": "/nix/store/..."}}]

We build a single installable, so anything other than exactly one record
is rejected rather than guessed at.
"""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from nix_sysgen.errors import (
    AmbiguousOutputError,
    MalformedOutputError,
    MissingOutputError,
)
from nix_sysgen.types import StorePath

DEFAULT_OUTPUT_NAME = "out"


class NixBuildOutput(BaseModel):
    """One record of `nix build --json` output.

    Newer Nix releases add fields such as startTime/stopTime; they are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    drv_path: str = Field(alias="drvPath")
    outputs: dict[str, str]


_BUILD_OUTPUT_LIST = TypeAdapter(list[NixBuildOutput])


def decode_build_output(output: str) -> list[NixBuildOutput]:
    """Decode the raw JSON text into build records.

    Raises:
        MalformedOutputError: If the text is not valid JSON of the expected shape.
    """
    try:
        return _BUILD_OUTPUT_LIST.validate_json(output)
    except ValidationError as e:
        raise MalformedOutputError(str(e)) from e


def parse_build_output(
    output: str, output_name: str = DEFAULT_OUTPUT_NAME
) -> StorePath:
    """Extract the single store path produced by a build.

    Args:
        output: Text printed by `nix build --json` on stdout.
        output_name: Derivation output to select.

    Returns:
        StorePath of the selected output.

    Raises:
        MalformedOutputError: If the output cannot be decoded.
        AmbiguousOutputError: If there is not exactly one build record.
        MissingOutputError: If the record has no output named output_name.
    """
    results = decode_build_output(output)
    if len(results) != 1:
        raise AmbiguousOutputError(len(results))

    (result,) = results
    store_path = result.outputs.get(output_name)
    if store_path is None:
        raise MissingOutputError(output_name, sorted(result.outputs))
    return StorePath(store_path)


__all__ = [
    "DEFAULT_OUTPUT_NAME",
    "NixBuildOutput",
    "decode_build_output",
    "parse_build_output",
]
