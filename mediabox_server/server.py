import logging
from typing import Optional
from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from mediabox import MediaStore
from .config import ServerConfig

logger = logging.getLogger(__name__)


def create_app(config: Optional[ServerConfig] = None, store: Optional[MediaStore] = None) -> Flask:
	"""Create and configure the Flask application."""
	if config is None:
		config = ServerConfig()

	app = Flask(__name__)

	# Configure app
	app.config["SECRET_KEY"] = config.secret_key
	app.config["MAX_CONTENT_LENGTH"] = config.max_upload_size
	app.config["MEDIABOX_CONFIG"] = config
	# One store per app; nothing lives at module level
	app.config["MEDIABOX_STORE"] = store or MediaStore(config.store_config())

	# Register blueprints
	from .routes.api import api_bp

	app.register_blueprint(api_bp, url_prefix="/api")

	@app.errorhandler(RequestEntityTooLarge)
	def too_large(e):
		return jsonify({"message": "Upload exceeds the maximum allowed size"}), 413

	logger.info(f"Mediabox server initialized (uploads: {config.upload_dir})")

	return app


def run_server(config: Optional[ServerConfig] = None):
	"""Run the mediabox web server."""
	if config is None:
		config = ServerConfig()

	app = create_app(config)
	store = app.config["MEDIABOX_STORE"]

	logger.info(f"Starting mediabox server on http://{config.host}:{config.port}")

	try:
		app.run(
			host=config.host,
			port=config.port,
			debug=config.debug,
			threaded=True
		)
	finally:
		store.close()
