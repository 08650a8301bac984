"""Retrieval routes - registers the snippet retrieval endpoint."""

from fastapi import APIRouter

from apps.retrieval.handlers import retrieve

router = APIRouter(tags=["Retrieval"])

# POST /retrieve - Ranked snippets for a query
router.post("/retrieve")(retrieve)
