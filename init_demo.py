#!/usr/bin/env python3
"""
Create demo users and a weekly schedule for local development.
Run with: python init_demo.py
"""
from vetcare import create_app
from vetcare.seeds import DEMO_USERS, seed_demo_data


def main():
    app = create_app()

    with app.app_context():
        print("=" * 60)
        print("Initializing Demo Data")
        print("=" * 60)

        users, rules = seed_demo_data()
        for user in users:
            password = next(d['password'] for d in DEMO_USERS if d['email'] == user.email)
            print(f"  ✓ Created: {user.email} ({user.role}) - Password: {password}")

        print()
        print(f"✅ Created {len(users)} user(s) and {rules} schedule rule(s)")
        print("\n⚠️  Demo credentials only. Never run this against production.")


if __name__ == '__main__':
    main()
