import importlib.util

from src.utils.errors import DependencyError, MigrationError

# Import name -> distribution name on the package index
REQUIRED_MODULES = {
    "requests": "requests",
    "bs4": "beautifulsoup4",
    "pydantic": "pydantic",
}


class PreFlightCheckError(MigrationError):
    """Custom exception for pre-flight check failures."""
    pass


def check_dependencies(modules: dict = None) -> dict:
    """
    Verifies that every library the pipeline imports is available.

    Args:
        modules: Mapping of import name to distribution name.  Defaults to
            :data:`REQUIRED_MODULES`.

    Returns:
        ``{"installedDependencies": [...], "missingDependencies": [...]}``
        listing distribution names.

    Raises:
        DependencyError: If any module cannot be found.
    """
    modules = REQUIRED_MODULES if modules is None else modules
    installed, missing = [], []
    for import_name, dist_name in modules.items():
        if importlib.util.find_spec(import_name) is None:
            missing.append(dist_name)
        else:
            installed.append(dist_name)

    if missing:
        raise DependencyError(
            f"Missing dependencies: {', '.join(missing)}. Install them with: pip install {' '.join(missing)}",
            installed=installed,
            missing=missing,
        )
    return {"installedDependencies": installed, "missingDependencies": missing}


def run_config_checks(config: dict) -> None:
    """
    Verifies that the configuration names a source and a destination.

    Args:
        config: The application configuration dictionary.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    if not config.get("wordpress", {}).get("url"):
        raise PreFlightCheckError("WordPress URL ('wordpress.url') is not configured.")

    dry_run = config.get("migration", {}).get("dry_run", False)
    if not dry_run and not config.get("builder", {}).get("api_key"):
        raise PreFlightCheckError("Builder.io private API key ('builder.api_key') is not configured.")
    if not dry_run and not config.get("builder", {}).get("public_api_key"):
        # The content API used to detect already-migrated items requires it
        raise PreFlightCheckError("Builder.io public API key ('builder.public_api_key') is not configured.")
