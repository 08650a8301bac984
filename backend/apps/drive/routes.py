"""Drive routes - registers the pass-through endpoints."""

from fastapi import APIRouter

from apps.drive.handlers import download_file, list_folder, list_root

router = APIRouter(tags=["Drive"])

# GET /root - List the drive root
router.get("/root")(list_root)

# GET /folder?path= - List a folder
router.get("/folder")(list_folder)

# GET /download?path=|id= - Stream file content
router.get("/download")(download_file)
