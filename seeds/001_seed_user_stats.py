import os
import sys
from urllib.parse import urlparse
import psycopg2
def get_connection():
    # DATABASE_URL wins; otherwise fall back to the docker-compose Postgres env vars
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        url = urlparse(database_url)
        return psycopg2.connect(
            dbname=url.path.lstrip("/"),
            user=url.username,
            password=url.password,
            host=url.hostname,
            port=url.port or 5432,
        )
    return psycopg2.connect(
        dbname=os.environ.get("POSTGRES_DB", "mydatabase"),
        user=os.environ.get("POSTGRES_USER", "user"),
        password=os.environ.get("POSTGRES_PASSWORD", "password"),
        host=os.environ.get("POSTGRES_HOST", "localhost"),
        port=5432,
    )
CREATE_SQL = '''
    CREATE TABLE IF NOT EXISTS user_stats (
        id BIGSERIAL PRIMARY KEY,
        user_id VARCHAR(255) NOT NULL UNIQUE,
        resize_count BIGINT NOT NULL DEFAULT 0,
        crop_head_count BIGINT NOT NULL DEFAULT 0,
        ai_count BIGINT NOT NULL DEFAULT 0,
        all_processing_count BIGINT NOT NULL DEFAULT 0,
        processed_images BIGINT NOT NULL DEFAULT 0,
        success_count BIGINT NOT NULL DEFAULT 0,
        failure_count BIGINT NOT NULL DEFAULT 0,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE TABLE IF NOT EXISTS sync_metadata (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL UNIQUE,
        last_sync_time TIMESTAMPTZ,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
'''
def main():
    user_id = os.environ.get("USER_ID")
    if not user_id:
        print("USER_ID is not set, nothing to seed.")
        sys.exit(1)
    conn = get_connection()
    conn.autocommit = False
    cur = conn.cursor()
    cur.execute(CREATE_SQL)
    # Idempotency: an existing stats row is left exactly as it is
    cur.execute(
        "INSERT INTO user_stats (user_id) VALUES (%s) ON CONFLICT (user_id) DO NOTHING;",
        (user_id,),
    )
    inserted = cur.rowcount
    conn.commit()
    cur.close()
    conn.close()
    if inserted:
        print(f"Created stats row for user {user_id}.")
    else:
        print(f"Stats row for user {user_id} already exists, skipping.")
if __name__ == "__main__":
    main()
