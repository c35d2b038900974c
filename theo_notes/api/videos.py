from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from theo_notes.db.session import get_db
from theo_notes.services.stream_parser import Category
from theo_notes.services.videos import (
    add_points,
    create_video_with_points,
    delete_points,
    delete_video,
    get_points,
    get_video,
    list_videos,
    point_to_dict,
    set_blog_content,
    set_point_completed,
    set_user_notes,
    video_to_dict,
)
from theo_notes.services.youtube import (
    channel_rejection_message,
    extract_youtube_video_id,
    fetch_video_metadata,
    is_allowed_channel,
    thumbnail_url,
)

router = APIRouter(prefix="/videos", tags=["videos"])


class VideoUrlRequest(BaseModel):
    url: str


class VideoInfo(BaseModel):
    url: str
    title: str
    thumbnail_url: str
    youtube_id: str


class ValidateVideoResponse(BaseModel):
    ok: bool
    video_info: VideoInfo


class PointIn(BaseModel):
    content: str = Field(min_length=1)
    category: Category
    timestamp: int | None = Field(default=None, ge=0)


class SaveVideoRequest(BaseModel):
    url: str
    video_id: str
    title: str
    thumbnail_url: str | None = None
    points: list[PointIn] = []


class AddPointsRequest(BaseModel):
    points: list[PointIn]


class PointUpdateRequest(BaseModel):
    is_completed: bool


class BlogRequest(BaseModel):
    blog_content: str = Field(min_length=1)


class NotesRequest(BaseModel):
    user_notes: str | None = None


def _video_or_404(db: Session, video_id: int):
    v = get_video(db, video_id)
    if not v:
        raise HTTPException(status_code=404, detail="Video not found")
    return v


def resolve_video_info(url: str) -> VideoInfo:
    """
    URL -> id -> oEmbed metadata -> channel check.
    Shared by /videos/validate and the streaming endpoints.
    """
    url = (url or "").strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")

    video_id = extract_youtube_video_id(url)
    if not video_id:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL")

    try:
        metadata = fetch_video_metadata(video_id)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not is_allowed_channel(metadata["author_url"]):
        raise HTTPException(status_code=400, detail=channel_rejection_message())

    return VideoInfo(url=url, title=metadata["title"], thumbnail_url=thumbnail_url(video_id), youtube_id=video_id)


@router.post("/validate", response_model=ValidateVideoResponse)
def validate_video(req: VideoUrlRequest) -> ValidateVideoResponse:
    return ValidateVideoResponse(ok=True, video_info=resolve_video_info(req.url))


@router.post("/save")
def save_video(req: SaveVideoRequest, db: Session = Depends(get_db)):
    if not req.url.strip() or not req.video_id.strip() or not req.title.strip():
        raise HTTPException(status_code=400, detail="Missing required fields")

    v = create_video_with_points(
        db,
        youtube_url=req.url,
        youtube_id=req.video_id,
        title=req.title,
        thumbnail_url=req.thumbnail_url,
        points=[p.model_dump(mode="json") for p in req.points],
    )
    return {"ok": True, "video": video_to_dict(v)}


@router.get("")
def list_saved_videos(
    db: Session = Depends(get_db),
    q: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    total, rows = list_videos(db, q=q, limit=limit, offset=offset)
    return {
        "ok": True,
        "total": total,
        "limit": limit,
        "offset": offset,
        "videos": [video_to_dict(v) for v in rows],
    }


@router.get("/{video_id}")
def get_saved_video(video_id: int, db: Session = Depends(get_db)):
    v = _video_or_404(db, video_id)
    return {
        "ok": True,
        "video": video_to_dict(v),
        "points": [point_to_dict(p) for p in get_points(db, video_id)],
    }


@router.delete("/{video_id}")
def delete_saved_video(video_id: int, db: Session = Depends(get_db)):
    if not delete_video(db, video_id):
        raise HTTPException(status_code=404, detail="Video not found")
    return {"ok": True}


# -----------------------
# Points
# -----------------------
@router.post("/{video_id}/points")
def add_video_points(video_id: int, req: AddPointsRequest, db: Session = Depends(get_db)):
    _video_or_404(db, video_id)
    if not req.points:
        raise HTTPException(status_code=400, detail="Points are required")

    rows = add_points(db, video_id, [p.model_dump(mode="json") for p in req.points])
    return {"ok": True, "points": [point_to_dict(p) for p in rows]}


@router.delete("/{video_id}/points")
def delete_video_points(video_id: int, db: Session = Depends(get_db)):
    _video_or_404(db, video_id)
    deleted = delete_points(db, video_id)
    return {"ok": True, "deleted": deleted}


@router.patch("/{video_id}/points/{point_id}")
def update_video_point(video_id: int, point_id: int, req: PointUpdateRequest, db: Session = Depends(get_db)):
    _video_or_404(db, video_id)
    try:
        p = set_point_completed(db, video_id, point_id, req.is_completed)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True, "point": point_to_dict(p)}


# -----------------------
# Blog + notes
# -----------------------
@router.put("/{video_id}/blog")
def save_blog(video_id: int, req: BlogRequest, db: Session = Depends(get_db)):
    v = _video_or_404(db, video_id)
    set_blog_content(db, v, req.blog_content)
    return {"ok": True}


@router.delete("/{video_id}/blog")
def clear_blog(video_id: int, db: Session = Depends(get_db)):
    v = _video_or_404(db, video_id)
    set_blog_content(db, v, None)
    return {"ok": True}


@router.get("/{video_id}/notes")
def get_notes(video_id: int, db: Session = Depends(get_db)):
    v = _video_or_404(db, video_id)
    return {"ok": True, "user_notes": v.user_notes or None}


@router.put("/{video_id}/notes")
def save_notes(video_id: int, req: NotesRequest, db: Session = Depends(get_db)):
    v = _video_or_404(db, video_id)
    set_user_notes(db, v, req.user_notes)
    return {"ok": True}
