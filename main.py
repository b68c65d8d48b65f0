import argparse
import logging
from mediabox.logger import setup_logging
from mediabox_server import ServerConfig, run_server

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000


def main():
	parser = argparse.ArgumentParser(description="Mediabox personal media manager")
	parser.add_argument("--uploads", "-u", default=None, help="Upload directory (default: ./uploads)")
	parser.add_argument("--host", default=None, help=f"Server host (default: {DEFAULT_HOST})")
	parser.add_argument("--port", type=int, default=None, help=f"Server port (default: {DEFAULT_PORT})")
	parser.add_argument("--store-config", default=None, help="JSON file with store settings")
	parser.add_argument("--max-upload-mb", type=int, default=None, help="Maximum request size in MB")
	parser.add_argument("--debug", action="store_true", help="Enable debug logging")

	args = parser.parse_args()

	setup_logging(level=logging.DEBUG if args.debug else logging.INFO)

	config = ServerConfig.from_env(
		host=args.host,
		port=args.port,
		upload_dir=args.uploads,
		store_config_file=args.store_config,
		max_upload_size=args.max_upload_mb * 1024 * 1024 if args.max_upload_mb else None,
		debug=args.debug or None,
	)
	logging.info(f"Serving uploads from {config.upload_dir}")

	try:
		run_server(config)
	except KeyboardInterrupt:
		logging.info("Shutting down...")
	except Exception as e:
		logging.critical(f"Fatal error: {e}", exc_info=True)
		raise SystemExit(1)


if __name__ == "__main__":
	main()
