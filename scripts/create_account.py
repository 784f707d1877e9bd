import os

from dotenv import load_dotenv

from tenant_billing.core.config import Settings
from tenant_billing.infrastructure.persistence.sqlite import SQLitePersistence


def main() -> None:
    load_dotenv()

    email = os.getenv("ACCOUNT_EMAIL") or input("Account e-mail: ").strip()
    if not email:
        raise RuntimeError("An e-mail is required to create an account.")
    first_name = input("First name (optional): ").strip() or None
    last_name = input("Last name (optional): ").strip() or None

    persistence = SQLitePersistence(Settings().database_path)
    try:
        account = persistence.create_account(email, first_name=first_name, last_name=last_name)
    finally:
        persistence.close()
    print(f"Account {account.id} created for {account.email} on the free plan.")


if __name__ == "__main__":
    main()
