from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from theo_notes.models.actionable_point import ActionablePoint
from theo_notes.models.video import Video
from theo_notes.services.point_merger import format_timestamp


def _point_fields(point: Any) -> dict[str, Any]:
    # PointCandidate, pydantic model or plain dict
    if hasattr(point, "model_dump"):
        point = point.model_dump()
    elif hasattr(point, "to_dict"):
        point = point.to_dict()
    return {
        "content": point["content"],
        "category": point.get("category"),
        "timestamp": point.get("timestamp"),
    }


def create_video_with_points(
    db: Session,
    *,
    youtube_url: str,
    youtube_id: str,
    title: str,
    thumbnail_url: str | None,
    points: Iterable[Any],
) -> Video:
    v = Video(
        youtube_url=youtube_url,
        youtube_id=youtube_id,
        title=title,
        thumbnail_url=thumbnail_url,
    )
    db.add(v)
    db.flush()

    for position, p in enumerate(points):
        db.add(ActionablePoint(video_id=v.id, position=position, is_completed=False, **_point_fields(p)))

    db.commit()
    db.refresh(v)
    return v


def get_video(db: Session, video_id: int) -> Video | None:
    return db.query(Video).filter(Video.id == video_id).first()


def get_points(db: Session, video_id: int) -> list[ActionablePoint]:
    return (
        db.query(ActionablePoint)
        .filter(ActionablePoint.video_id == video_id)
        .order_by(ActionablePoint.position.asc())
        .all()
    )


def list_videos(db: Session, *, q: str | None = None, limit: int = 20, offset: int = 0) -> tuple[int, list[Video]]:
    query = db.query(Video)
    if q and q.strip():
        s = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Video.title.ilike(s),
                Video.youtube_url.ilike(s),
                Video.youtube_id.ilike(s),
            )
        )

    total = query.count()
    rows = query.order_by(Video.created_at.desc(), Video.id.desc()).offset(offset).limit(limit).all()
    return total, rows


def delete_video(db: Session, video_id: int) -> bool:
    v = get_video(db, video_id)
    if not v:
        return False
    db.delete(v)
    db.commit()
    return True


def add_points(db: Session, video_id: int, points: Iterable[Any]) -> list[ActionablePoint]:
    """Append after the current last position."""
    last = (
        db.query(func.max(ActionablePoint.position))
        .filter(ActionablePoint.video_id == video_id)
        .scalar()
    )
    start = 0 if last is None else last + 1

    rows: list[ActionablePoint] = []
    for i, p in enumerate(points):
        row = ActionablePoint(video_id=video_id, position=start + i, is_completed=False, **_point_fields(p))
        db.add(row)
        rows.append(row)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


def delete_points(db: Session, video_id: int) -> int:
    n = db.query(ActionablePoint).filter(ActionablePoint.video_id == video_id).delete()
    db.commit()
    return n


def set_point_completed(db: Session, video_id: int, point_id: int, is_completed: bool) -> ActionablePoint:
    p = (
        db.query(ActionablePoint)
        .filter(ActionablePoint.id == point_id, ActionablePoint.video_id == video_id)
        .first()
    )
    if not p:
        raise ValueError("Point not found")
    p.is_completed = is_completed
    db.commit()
    db.refresh(p)
    return p


def set_blog_content(db: Session, video: Video, blog_content: str | None) -> Video:
    video.blog_content = blog_content
    db.commit()
    db.refresh(video)
    return video


def set_user_notes(db: Session, video: Video, user_notes: str | None) -> Video:
    video.user_notes = user_notes
    db.commit()
    db.refresh(video)
    return video


# ----------------------------
# Serialization
# ----------------------------

def point_to_dict(p: ActionablePoint) -> dict[str, Any]:
    return {
        "id": p.id,
        "content": p.content,
        "category": p.category,
        "timestamp": p.timestamp,
        "timestamp_label": format_timestamp(p.timestamp) if p.timestamp is not None else None,
        "is_completed": bool(p.is_completed),
        "position": p.position,
    }


def video_to_dict(v: Video) -> dict[str, Any]:
    return {
        "id": v.id,
        "youtube_url": v.youtube_url,
        "youtube_id": v.youtube_id,
        "title": v.title,
        "thumbnail_url": v.thumbnail_url,
        "blog_content": v.blog_content,
        "user_notes": v.user_notes,
        "created_at": v.created_at.isoformat() if v.created_at else None,
        "updated_at": v.updated_at.isoformat() if v.updated_at else None,
    }
