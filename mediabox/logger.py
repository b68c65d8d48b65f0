import logging, sys

HANDLER_NAME = "mediabox"


def setup_logging(level = logging.INFO, stream = None):
	"""Install the stdout log handler on the root logger (idempotent)."""
	root_logger = logging.getLogger()
	root_logger.setLevel(level)

	for existing in list(root_logger.handlers):
		if existing.get_name() == HANDLER_NAME:
			root_logger.removeHandler(existing)

	handler = logging.StreamHandler(stream or sys.stdout)
	handler.set_name(HANDLER_NAME)
	
	formatter = logging.Formatter(
		"[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
		datefmt="%H:%M:%S"
	)
	handler.setFormatter(formatter)
	root_logger.addHandler(handler)

	# Werkzeug logs every request at INFO
	if level > logging.DEBUG:
		logging.getLogger("werkzeug").setLevel(logging.WARNING)
