"""
Entry point for the WordPress to Builder.io migration tool.
"""

import sys

from src.migration_tool import BuilderMigrationTool

CONFIG_FILE = "config/migration_config.json"


def main():
    """
    Main function to run the WordPress to Builder.io migration tool.
    """
    tool = BuilderMigrationTool(config_file=CONFIG_FILE)
    state = tool.run()

    if state.status != "completed":
        tool.log_message(f"Migration failed: {state.error}", level="ERROR")
        return 1

    summary = state.report.summary
    tool.log_message(
        f"Migrated {summary.migrated_content} of {summary.total_content} items "
        f"({summary.skipped_content} skipped, {summary.failed_content} failed) in {summary.migration_time}."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
