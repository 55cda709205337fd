"""ChoreQuest Flask application - Main entry point."""

import os
import sys
import logging
from pathlib import Path

import click
from flask import Flask, jsonify, g
from flask_migrate import Migrate
from sqlalchemy import text
from werkzeug.middleware.proxy_fix import ProxyFix

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

from chorequest.models import db
from chorequest.auth import load_request_identity

logger = logging.getLogger(__name__)

# Initialize Flask-Migrate
migrate = Migrate()

MIGRATIONS_DIR = Path(__file__).parent / 'migrations'


def create_app(config_name=None):
    """Application factory pattern for Flask app creation."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        # Default to development if running locally, production if a data volume is mounted
        if os.path.exists('/data'):
            config_name = os.environ.get('FLASK_ENV', 'production')
        else:
            config_name = os.environ.get('FLASK_ENV', 'development')

    from chorequest.config import config
    app.config.from_object(config[config_name])

    # Ensure data directory exists (skip for in-memory database)
    if app.config['SQLALCHEMY_DATABASE_URI'] != "sqlite:///:memory:":
        data_dir = Path(app.config['DATA_DIR'])
        data_dir.mkdir(parents=True, exist_ok=True)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db, directory=str(MIGRATIONS_DIR))

    # ProxyFix handles reverse proxy headers (X-Forwarded-For, etc.)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    if not app.config.get('ADMIN_API_TOKEN'):
        logger.warning("ADMIN_API_TOKEN is not set; administrator endpoints will refuse every request")

    # Register middleware
    app.before_request(load_request_identity)

    # Register routes
    register_routes(app)

    # Register maintenance commands
    register_commands(app)

    return app


def register_routes(app):
    """Register all application routes."""

    from chorequest.routes import (
        children_bp,
        chores_bp,
        submissions_bp,
        quests_bp,
        rewards_bp,
        redemptions_bp,
        stats_bp,
    )

    app.register_blueprint(children_bp)
    app.register_blueprint(chores_bp)
    app.register_blueprint(submissions_bp)
    app.register_blueprint(quests_bp)
    app.register_blueprint(rewards_bp)
    app.register_blueprint(redemptions_bp)
    app.register_blueprint(stats_bp)

    @app.route('/health')
    def health():
        """Health check endpoint for monitoring."""
        try:
            # Check database connectivity
            db.session.execute(text('SELECT 1'))
            db_status = 'healthy'
        except Exception as e:
            logger.error(f"Health check database query failed: {e}")
            db_status = 'unhealthy'

        return jsonify({
            'status': 'healthy' if db_status == 'healthy' else 'degraded',
            'database': db_status,
            'is_admin': getattr(g, 'is_admin', False),
            'child_id': getattr(g, 'child_id', None)
        })


def register_commands(app):
    """Register Flask CLI commands for maintenance jobs."""

    @app.cli.command('audit-points')
    def audit_points_command():
        """Compare stored balances with the ledger and the approved history."""
        from chorequest.jobs import audit_points_balances

        discrepancies = audit_points_balances()
        if discrepancies:
            for d in discrepancies:
                click.echo(
                    f"child {d['child_id']}: stored={d['stored']} "
                    f"ledger={d['ledger']} replayed={d['replayed']}"
                )
            raise SystemExit(1)
        click.echo('All balances verified')

    @app.cli.command('sweep-streaks')
    def sweep_streaks_command():
        """Reset streaks of assignments whose due date was missed."""
        from chorequest.jobs import sweep_missed_streaks

        reset = sweep_missed_streaks()
        click.echo(f'Reset {reset} streak(s)')

    @app.cli.command('seed')
    @click.option('--create-tables', is_flag=True, help='Create tables before seeding (no migrations)')
    def seed_command(create_tables):
        """Load sample children, chores, quests and rewards."""
        from chorequest.seed_db import seed_sample_data

        if create_tables:
            db.create_all()
        summary = seed_sample_data()
        click.echo(', '.join(f'{count} {name}' for name, count in summary.items()))


if __name__ == '__main__':
    # Run development server
    create_app().run(host='0.0.0.0', port=8099, debug=True)
