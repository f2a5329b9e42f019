#!/usr/bin/env python3
"""
Generate secure secrets for the loser pool service
Run this script to generate SECRET_KEY and the admin/cron bearer tokens
"""

import secrets


def generate_secrets():
    """Generate secure random keys for the application"""
    print("🔐 Generating secure secrets for the loser pool...")
    print("=" * 50)

    print(f"SECRET_KEY={secrets.token_urlsafe(32)}")
    print(f"ADMIN_API_TOKEN={secrets.token_urlsafe(32)}")
    print(f"CRON_SECRET_TOKEN={secrets.token_urlsafe(32)}")

    print("=" * 50)
    print("📝 Copy these values to your .env file")
    print("⚠️  Keep these secrets secure and never commit them to version control!")


if __name__ == "__main__":
    generate_secrets()
