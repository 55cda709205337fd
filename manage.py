#!/usr/bin/env python
"""
Management script for ChoreQuest.

Runs the development server. Database migrations and maintenance jobs
are Flask CLI commands:

    flask --app chorequest.app:create_app db upgrade
    flask --app chorequest.app:create_app audit-points
    flask --app chorequest.app:create_app sweep-streaks
    flask --app chorequest.app:create_app seed
"""

from chorequest.app import create_app

# Create Flask app
app = create_app()

if __name__ == '__main__':
    # This allows running: python manage.py
    app.run(debug=True)
