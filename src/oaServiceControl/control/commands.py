"""Remote service control command strings."""

import re

SC_QUERY = "query"
SC_STOP = "stop"
SC_START = "start"

# Characters that cannot appear in a service name and would break quoting
_FORBIDDEN_NAME_CHARS = re.compile(r'["\\/\x00-\x1f]')


def is_valid_service_name(name: str) -> bool:
    """Check that a service name can be safely quoted on the command line."""
    return bool(name and name.strip()) and not _FORBIDDEN_NAME_CHARS.search(name)


def build_command(verb: str, service_name: str) -> str:
    """
    Build an ``sc`` command for a service.

    The name is always quoted so that names containing spaces are passed as
    one argument.
    """
    if not is_valid_service_name(service_name):
        raise ValueError(f"Invalid service name: {service_name!r}")
    return f'sc {verb} "{service_name}"'
