#!/usr/bin/env python3
"""Application entry point"""
import os
import sys

def init_database():
    """Initialize the database"""
    from portal import create_app, db
    app = create_app(os.getenv('FLASK_ENV') or 'development')
    with app.app_context():
        db.create_all()
        print("Database initialized!")

def create_admin_user():
    """Create the default admin user"""
    from portal import create_app, db
    from portal.errors import DatabaseError
    from portal.services.accounts import create_user

    app = create_app(os.getenv('FLASK_ENV') or 'development')

    with app.app_context():
        # Create tables if they don't exist
        db.create_all()

        email = app.config['DEFAULT_ADMIN_EMAIL']
        password = app.config['DEFAULT_ADMIN_PASSWORD']
        try:
            user, created = create_user(app.config['DEFAULT_ADMIN_USERNAME'], email, password, role='admin')
        except DatabaseError as e:
            print("Error: {}".format(e.message))
            sys.exit(1)

        if not created:
            print("Admin user already exists!")
            return

        print("Admin user created successfully!")
        print("Email: {}".format(user.email))
        print("Password: {}".format(password))
        print("Please change the password after first login!")

if __name__ == '__main__':
    # Handle command-line arguments
    if len(sys.argv) > 1:
        command = sys.argv[1]
        if command == 'create-admin':
            create_admin_user()
        elif command == 'init-db':
            init_database()
        else:
            print("Unknown command: {}".format(command))
            print("Available commands: create-admin, init-db")
            sys.exit(1)
    else:
        # Run the Flask development server
        from portal import create_app
        app = create_app(os.getenv('FLASK_ENV') or 'development')
        app.run(host='0.0.0.0', port=5000, debug=True)
