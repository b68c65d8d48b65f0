import logging
from functools import wraps
from flask import Blueprint, request, jsonify, current_app, send_file

from mediabox import paths
from mediabox.errors import InvalidInputError, NotFoundError, RemoteFetchError, StorageError

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def get_store():
	"""Get the MediaStore owned by this app."""
	return current_app.config["MEDIABOX_STORE"]


def error(message: str, status: int):
	return jsonify({"message": message}), status


def json_body() -> dict:
	data = request.get_json(silent=True)
	return data if isinstance(data, dict) else {}


def handles_errors(action: str):
	"""Map store exceptions onto HTTP status codes."""
	def decorator(f):
		@wraps(f)
		def decorated(*args, **kwargs):
			try:
				return f(*args, **kwargs)
			except InvalidInputError as e:
				return error(str(e), 400)
			except NotFoundError as e:
				return error(str(e), 404)
			except Exception:
				logger.exception(f"Failed to {action}")
				return error(f"Failed to {action}", 500)
		return decorated
	return decorator


# ============ Files ============

@api_bp.route("/files", methods=["GET"])
@handles_errors("fetch files")
def list_files():
	return jsonify([f.to_dict() for f in get_store().index.list()])


@api_bp.route("/files/upload", methods=["POST"])
@handles_errors("upload files")
def upload_files():
	"""
	Upload one or more files. `folderPaths[i]` is either the folder open in
	the client or the browser's relative path for directory uploads.
	"""
	store = get_store()
	files = request.files.getlist("files")
	if not files:
		return error("No files uploaded", 400)

	folder_paths = request.form.getlist("folderPaths")

	uploaded = []
	failures = []
	# No rollback: files stored before a failure stay stored
	for i, file in enumerate(files):
		folder_hint = folder_paths[i] if i < len(folder_paths) else None
		try:
			record = store.ingest_stream(file.stream, file.filename, file.mimetype, folder_hint)
			uploaded.append(record.to_dict())
		except InvalidInputError as e:
			failures.append({"file": file.filename, "message": str(e)})
		except (OSError, StorageError) as e:
			logger.error(f"Upload of {file.filename} failed: {e}")
			failures.append({"file": file.filename, "message": "Failed to store file"})

	if failures and not uploaded:
		return jsonify({"message": "Failed to upload files", "errors": failures}), 400
	return jsonify({"files": uploaded, "errors": failures})


@api_bp.route("/files/upload-url", methods=["POST"])
@handles_errors("upload file from URL")
def upload_from_url():
	data = json_body()
	url = data.get("url")
	if not url or not isinstance(url, str):
		return error("Must be a valid URL", 400)

	try:
		record = get_store().ingest_url(url.strip(), data.get("folderPath") or None)
	except RemoteFetchError as e:
		return error(str(e), 400)
	return jsonify(record.to_dict())


@api_bp.route("/files/search", methods=["GET"])
@handles_errors("search files")
def search_files():
	"""Root: files and folders. Inside a folder: files of that folder only."""
	store = get_store()
	query = request.args.get("q", "")
	folder = request.args.get("folder") or None

	if not folder:
		return jsonify(store.search.search_all(query).to_dict())

	files = store.search.search_files(query, folder)
	return jsonify({"files": [f.to_dict() for f in files], "folders": []})


def _file_or_404(file_id: str):
	record = get_store().index.get(file_id)
	if record is None:
		raise NotFoundError("File not found")
	return record


@api_bp.route("/files/<file_id>/view", methods=["GET"])
@handles_errors("serve file")
def view_file(file_id: str):
	record = _file_or_404(file_id)
	try:
		return send_file(record.path, mimetype=record.mime_type, download_name=record.original_name)
	except FileNotFoundError:
		return error("File not found on disk", 404)


@api_bp.route("/files/<file_id>/thumbnail", methods=["GET"])
@handles_errors("serve thumbnail")
def file_thumbnail(file_id: str):
	record = _file_or_404(file_id)
	if not record.thumbnail_path:
		return error("Thumbnail not found", 404)
	try:
		return send_file(record.thumbnail_path, mimetype="image/jpeg")
	except FileNotFoundError:
		return error("Thumbnail not found on disk", 404)


@api_bp.route("/files/<file_id>/download", methods=["GET"])
@handles_errors("download file")
def download_file(file_id: str):
	record = _file_or_404(file_id)
	try:
		return send_file(
			record.path,
			mimetype=record.mime_type,
			as_attachment=True,
			download_name=record.original_name
		)
	except FileNotFoundError:
		return error("File not found on disk", 404)


@api_bp.route("/files/<file_id>", methods=["DELETE"])
@handles_errors("delete file")
def delete_file(file_id: str):
	if not get_store().delete_file(file_id):
		return error("File not found", 404)
	return jsonify({"message": "File deleted successfully"})


@api_bp.route("/files/<file_id>/rename", methods=["PATCH"])
@handles_errors("rename file")
def rename_file(file_id: str):
	new_name = json_body().get("newName")
	if not isinstance(new_name, str) or not new_name.strip():
		return error("Invalid file name", 400)

	record = get_store().rename_file(file_id, new_name.strip())
	if record is None:
		return error("File not found", 404)
	return jsonify(record.to_dict())


# ============ Folders ============

@api_bp.route("/folders", methods=["GET"])
@handles_errors("fetch folders")
def list_folders():
	return jsonify([f.to_dict() for f in get_store().folders()])


@api_bp.route("/folders", methods=["POST"])
@handles_errors("create folder")
def create_folder():
	folder_name = json_body().get("folderName")
	if not isinstance(folder_name, str) or not folder_name.strip():
		return error("Folder name is required", 400)

	try:
		created = get_store().mutator.create_folder(folder_name)
	except StorageError:
		return error("Failed to create folder", 500)
	return jsonify({"success": True, "folderName": created})


@api_bp.route("/folders/<path:folder_path>/contents", methods=["GET"])
@handles_errors("get folder contents")
def folder_contents(folder_path: str):
	folder = get_store().folder(folder_path)
	if folder is None:
		logger.debug(f"Folder not found: {folder_path}")
		return error("Folder not found", 404)
	return jsonify(folder.to_dict())


@api_bp.route("/folders/<path:folder_path>/files", methods=["GET"])
@handles_errors("fetch folder files")
def folder_files(folder_path: str):
	return jsonify([f.to_dict() for f in get_store().files_in_folder(folder_path)])


@api_bp.route("/folders/<path:folder_path>/download", methods=["GET"])
@handles_errors("create folder download")
def download_folder(folder_path: str):
	archive = get_store().zip_folder(folder_path)
	name = paths.name_of(folder_path) or "folder"
	return send_file(
		archive,
		mimetype="application/zip",
		as_attachment=True,
		download_name=f"{name}.zip"
	)


@api_bp.route("/folders/<path:folder_path>/images", methods=["DELETE"])
@handles_errors("delete images")
def delete_folder_images(folder_path: str):
	deleted = get_store().mutator.delete_all_images(folder_path)
	return jsonify({"message": f"{deleted} images deleted successfully", "deletedCount": deleted})


@api_bp.route("/folders/<path:folder_path>/rename", methods=["PATCH"])
@handles_errors("rename folder")
def rename_folder(folder_path: str):
	new_name = json_body().get("newName")
	if not isinstance(new_name, str) or not new_name.strip():
		return error("Invalid folder name", 400)

	if get_store().mutator.rename_folder(folder_path, new_name.strip()):
		return jsonify({"success": True, "message": "Folder renamed successfully"})
	return error("Failed to rename folder - folder may not exist or name already taken", 400)


@api_bp.route("/folders/<path:folder_path>", methods=["DELETE"])
@handles_errors("delete folder")
def delete_folder(folder_path: str):
	deleted = get_store().mutator.delete_folder(folder_path)
	return jsonify({"message": "Folder deleted successfully", "deleted": deleted})


# ============ Folder PINs ============

@api_bp.route("/folders/<path:folder_path>/pin", methods=["POST"])
@handles_errors("set PIN")
def set_folder_pin(folder_path: str):
	get_store().pins.set_pin(folder_path, json_body().get("pin"))
	return jsonify({"success": True, "message": "PIN set successfully"})


@api_bp.route("/folders/<path:folder_path>/unlock", methods=["POST"])
@handles_errors("verify PIN")
def unlock_folder(folder_path: str):
	pin = json_body().get("pin")
	if not pin or not isinstance(pin, str):
		return error("PIN is required", 400)

	if get_store().pins.verify_pin(folder_path, pin):
		return jsonify({"success": True, "message": "PIN verified successfully"})
	logger.info(f"Rejected PIN for folder '{folder_path}'")
	return error("Invalid PIN", 401)


@api_bp.route("/folders/<path:folder_path>/pin", methods=["DELETE"])
@handles_errors("remove PIN")
def remove_folder_pin(folder_path: str):
	pins = get_store().pins
	pin = json_body().get("pin")

	# Verify current PIN before removing
	if pin and not pins.verify_pin(folder_path, pin):
		return error("Invalid PIN", 401)

	if pins.remove_pin(folder_path):
		return jsonify({"success": True, "message": "PIN removed successfully"})
	return error("No PIN found for this folder", 404)
