import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT")
db_name = os.getenv("DB_NAME")
database_url = os.getenv("DATABASE_URL")
pepper_data = os.getenv("PEPPER_DATA", "")

redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))

# Identity allowed to propose/execute/cancel parameter changes and fund the treasury.
governor_address = os.getenv("GOVERNOR_ADDRESS", "0x" + "00" * 20).lower()
# Identity allowed to deliver randomness fulfillment callbacks.
entropy_provider_address = os.getenv("ENTROPY_PROVIDER_ADDRESS", "0x" + "00" * 20).lower()
entropy_fee = int(os.getenv("ENTROPY_FEE", "0"))

stale_reveal_hours = int(os.getenv("STALE_REVEAL_HOURS", "24"))

if __name__ == "__main__":
    print(user, host, port, db_name, governor_address, entropy_provider_address, entropy_fee)
