#!/usr/bin/env python
"""Register a WordPress site for local development.

Reads WP_SITE_URL, WP_USERNAME, WP_APP_PASSWORD and WP_SHARED_SECRET from the
environment (or .env) and prints the website id to use in
/wordpress/{website_id}/ai-command.
"""
import os
import sys

from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.models.website import Website


def main():
    site_url = os.getenv("WP_SITE_URL")
    if not site_url:
        print("Set WP_SITE_URL (and WP_USERNAME, WP_APP_PASSWORD, WP_SHARED_SECRET) first")
        sys.exit(1)

    init_db()
    db = SessionLocal()
    try:
        website = db.query(Website).filter(Website.site_url == site_url.rstrip("/")).first()
        if website:
            print(f"Website already registered: id={website.id} ({website.site_url})")
            return

        website = Website(
            name=os.getenv("WP_SITE_NAME", site_url),
            site_url=site_url.rstrip("/"),
            wp_username=os.getenv("WP_USERNAME"),
            wp_app_password=os.getenv("WP_APP_PASSWORD"),
            shared_secret=os.getenv("WP_SHARED_SECRET"),
        )
        db.add(website)
        db.commit()
        db.refresh(website)

        print(f"Website created: id={website.id} ({website.site_url})")
        if not website.has_credentials:
            print("WARNING: credentials incomplete; ai-command endpoints will return 404 for this site")
    finally:
        db.close()


if __name__ == "__main__":
    main()
