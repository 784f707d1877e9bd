"""Finalize end-of-period cancellations whose period has elapsed.

Meant to be run by cron or another scheduler; running it repeatedly is safe.
"""

from tenant_billing.core.app_factory import build_container
from tenant_billing.core.config import Settings
from tenant_billing.core.logging import configure_logging


def main() -> None:
    configure_logging()
    container = build_container(Settings())
    try:
        report = container.period_end_sweeper.run()
    finally:
        container.persistence.close()
    print(f"Finalized: {len(report.finalized)}  Skipped: {len(report.skipped)}")


if __name__ == "__main__":
    main()
