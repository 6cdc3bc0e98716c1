"""FastAPI routes for the image collection."""

from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers import image_controller
from models.image_record import ALL_CATEGORIES

router = APIRouter(tags=["images"])


class DeletePayload(BaseModel):
	ids: List[str]


class SearchPayload(BaseModel):
	query: str = ""


@router.get("/images")
async def list_images_route(request: Request, category_id: str = ALL_CATEGORIES, q: Optional[str] = None):
	"""Return images of a category, filtered by the search query."""
	return await image_controller.list_images(request, category_id, q)


@router.get("/images/favorites")
async def list_favorites_route(request: Request):
	return await image_controller.list_favorites(request)


@router.post("/images", summary="Upload images into a category")
async def upload_images_route(
	request: Request,
	files: List[UploadFile] = File(...),
	category_id: str = Form(...),
):
	"""Add uploaded images; duplicates are skipped with a warning notification."""
	try:
		return await image_controller.upload_images(request, files, category_id)
	except HTTPException:
		raise
	except Exception as exc:  # pylint: disable=broad-exception-caught
		raise HTTPException(status_code=500, detail="Failed to add images.") from exc


@router.post("/images/delete")
async def delete_images_route(request: Request, payload: DeletePayload):
	return await image_controller.delete_images(request, payload.ids)


@router.delete("/images")
async def clear_images_route(request: Request, only_favorites: bool = False):
	"""Delete every image, or only the favorites."""
	return await image_controller.clear_images(request, only_favorites)


@router.delete("/images/{image_id}")
async def delete_image_route(request: Request, image_id: str):
	return await image_controller.delete_image(request, image_id)


@router.post("/images/{image_id}/favorite")
async def toggle_favorite_route(request: Request, image_id: str):
	return await image_controller.toggle_favorite(request, image_id)


@router.get("/images/{image_id}/content")
async def get_image_content(request: Request, image_id: str):
	return await image_controller.get_content(request, image_id)


@router.get("/images/{image_id}/thumbnail")
async def get_image_thumbnail(request: Request, image_id: str):
	"""Return the PNG thumbnail bytes for the specified image id."""
	try:
		return await image_controller.get_thumbnail(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/blobs/{token}")
async def get_blob_route(request: Request, token: str):
	return await image_controller.get_blob(request, token)


@router.put("/search")
async def set_search_route(request: Request, payload: SearchPayload):
	return await image_controller.set_search_query(request, payload.query)


@router.get("/categories/counts")
async def category_counts_route(request: Request):
	return await image_controller.category_counts(request)


@router.get("/notifications")
async def notifications_route(request: Request, drain: bool = False):
	return await image_controller.notifications(request, drain)
