"""Mural service: feed, posts, likes and comments."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from intranet.core.auth.principal import Principal
from intranet.domains.gamification import rules as gamification_rules
from intranet.domains.gamification.services import record_activity
from intranet.domains.mural.models import MuralComment, MuralLike, MuralPost
from intranet.domains.mural.schemas import CommentCreate, PostCreate, PostResponse
from intranet.extensions import db

logger = logging.getLogger(__name__)

# Sectors allowed to publish besides admins.
PUBLISHER_SECTORS = ("TI", "RH")


def can_publish(principal: Principal) -> bool:
    return principal.role == "admin" or principal.sector in PUBLISHER_SECTORS


def _award(user_id: int, category: str, description: str, metadata: dict) -> int:
    """Points granted for the action, or 0 when the activity could not be stored."""
    try:
        event = record_activity(user_id, category, description, metadata=metadata)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not award %s points to user %s", category, user_id)
        return 0
    return event.points if event is not None else 0


def _counts(model, post_ids: List[int], *criteria) -> Dict[int, int]:
    if not post_ids:
        return {}
    rows = (
        db.session.query(model.post_id, func.count(model.id))
        .filter(model.post_id.in_(post_ids), *criteria)
        .group_by(model.post_id)
        .all()
    )
    return {post_id: count for post_id, count in rows}


def list_posts(viewer_id: Optional[int] = None) -> List[PostResponse]:
    """Active posts, pinned first, newest first."""
    posts = (
        MuralPost.query.filter_by(is_active=True)
        .order_by(MuralPost.pinned.desc(), MuralPost.created_at.desc(), MuralPost.id.desc())
        .all()
    )
    ids = [post.id for post in posts]
    likes = _counts(MuralLike, ids, MuralLike.removed_at.is_(None))
    comments = _counts(MuralComment, ids)
    liked = set()
    if viewer_id is not None and ids:
        liked = {
            row.post_id
            for row in MuralLike.query.filter(
                MuralLike.post_id.in_(ids), MuralLike.user_id == viewer_id, MuralLike.removed_at.is_(None)
            )
        }
    return [
        PostResponse(
            id=post.id,
            title=post.title,
            content=post.content,
            pinned=post.pinned,
            author_name=post.author_name,
            created_at=post.created_at,
            likes_count=likes.get(post.id, 0),
            comments_count=comments.get(post.id, 0),
            liked_by_me=post.id in liked,
        )
        for post in posts
    ]


def get_post(post_id: int) -> Optional[MuralPost]:
    post = db.session.get(MuralPost, post_id)
    if post is None or not post.is_active:
        return None
    return post


def create_post(principal: Principal, data: PostCreate) -> Tuple[MuralPost, int]:
    post = MuralPost(
        title=data.title,
        content=data.content,
        pinned=data.pinned,
        author_id=principal.id,
        author_name=principal.name,
    )
    db.session.add(post)
    db.session.commit()
    logger.info("Mural post %s published by user %s", post.id, principal.id)
    points = _award(principal.id, gamification_rules.POST_CREATION, f"Publicou: {post.title}", {"post_id": post.id})
    return post, points


def toggle_like(principal: Principal, post: MuralPost) -> Tuple[bool, int]:
    """
    Flip the caller's like on ``post``; returns ``(liked, points)``.

    Only the first like a user ever gives a post earns reaction points, so
    unliking and liking again cannot be used to farm them.
    """
    like = MuralLike.query.filter_by(post_id=post.id, user_id=principal.id).first()
    if like is not None and like.is_active:
        like.removed_at = datetime.utcnow()
        db.session.commit()
        return False, 0
    if like is not None:
        like.removed_at = None
        db.session.commit()
        return True, 0

    db.session.add(MuralLike(post_id=post.id, user_id=principal.id))
    db.session.commit()
    points = _award(principal.id, gamification_rules.REACTION, f"Curtiu: {post.title}", {"post_id": post.id})
    return True, points


def list_comments(post: MuralPost) -> List[MuralComment]:
    return MuralComment.query.filter_by(post_id=post.id).order_by(MuralComment.created_at, MuralComment.id).all()


def add_comment(principal: Principal, post: MuralPost, data: CommentCreate) -> Tuple[MuralComment, int]:
    comment = MuralComment(post_id=post.id, user_id=principal.id, user_name=principal.name, text=data.text)
    db.session.add(comment)
    db.session.commit()
    points = _award(
        principal.id,
        gamification_rules.COMMENT,
        f"Comentou: {post.title}",
        {"post_id": post.id, "comment_id": comment.id},
    )
    return comment, points
