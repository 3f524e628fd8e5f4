from datetime import timedelta

import pytest

from blogify.core.models import STATUS_DRAFT
from blogify.errors import NotFoundError, ValidationError
from blogify.services import blog_service, user_service


@pytest.fixture()
def ada(store):
    return user_service.signup(store, full_name="Ada Lovelace", email="ada@example.com", password="secret1")


@pytest.fixture()
def bob(store):
    return user_service.signup(store, full_name="Bob", email="bob@example.com", password="secret1")


def _post(store, author, title="Notes", body="Some words", **kw):
    return blog_service.create_blog(store, author, title=title, body=body, **kw)


def test_create_blog_cleans_input(store, ada):
    blog = _post(store, ada, title="  Engines  ", body="word " * 450, tags="math, Math, , engines ")
    assert blog.title == "Engines"
    assert blog.tags == ["math", "engines"]
    assert blog.views == 0 and blog.likes == []
    assert blog.status == "published"
    assert blog.read_time == 3
    assert store.get("blogs", blog.id)["created_by"] == ada.id


@pytest.mark.parametrize("title,body,status", [("", "body", ""), ("t", "  ", ""), ("t", "b", "archived")])
def test_create_blog_validation(store, ada, title, body, status):
    with pytest.raises(ValidationError):
        _post(store, ada, title=title, body=body, status=status)
    assert store.count("blogs") == 0


def test_each_read_increments_views(store, ada):
    blog = _post(store, ada)
    for _ in range(5):
        blog_service.read_blog(store, blog.id)
    assert blog_service.get_blog(store, blog.id).views == 5


def test_read_unknown_blog(store):
    with pytest.raises(NotFoundError):
        blog_service.read_blog(store, "missing")


def test_like_toggle_twice_restores_state(store, ada, bob):
    blog = _post(store, ada)
    blog_service.toggle_like(store, blog.id, ada)
    before = blog_service.get_blog(store, blog.id).likes

    first = blog_service.toggle_like(store, blog.id, bob)
    assert (first.likes, first.liked) == (2, True)
    second = blog_service.toggle_like(store, blog.id, bob)
    assert (second.likes, second.liked) == (1, False)
    assert blog_service.get_blog(store, blog.id).likes == before


def test_drafts_are_private_to_their_author(store, ada, bob):
    draft = _post(store, ada, status=STATUS_DRAFT)
    assert blog_service.list_feed(store).total == 0
    with pytest.raises(NotFoundError):
        blog_service.read_blog(store, draft.id)
    with pytest.raises(NotFoundError):
        blog_service.read_blog(store, draft.id, bob)
    with pytest.raises(NotFoundError):
        blog_service.toggle_like(store, draft.id, bob)
    assert blog_service.read_blog(store, draft.id, ada).views == 1
    assert [b.id for b in blog_service.list_user_blogs(store, ada.id, include_drafts=True)] == [draft.id]
    assert blog_service.list_user_blogs(store, ada.id) == []


def _backdate(store, blog, days):
    doc = store.get("blogs", blog.id)
    doc["created_at"] = (blog.created_at - timedelta(days=days)).isoformat()
    store.save("blogs", doc)


def test_feed_is_paginated_newest_first(store, ada):
    blogs = [_post(store, ada, title=f"Post {i}") for i in range(5)]
    for age, blog in enumerate(reversed(blogs)):
        _backdate(store, blog, age)

    first = blog_service.list_feed(store, page=1, page_size=2)
    assert [b.title for b in first.blogs] == ["Post 4", "Post 3"]
    assert (first.total, first.pages, first.has_prev, first.has_next) == (5, 3, False, True)
    assert first.authors[ada.id].full_name == "Ada Lovelace"

    last = blog_service.list_feed(store, page=3, page_size=2)
    assert [b.title for b in last.blogs] == ["Post 0"]
    assert last.has_prev and not last.has_next

    # out of range pages clamp to the last page
    assert blog_service.list_feed(store, page=99, page_size=2).page == 3


def test_feed_search_and_tag_filter(store, ada):
    _post(store, ada, title="Analytical Engine", body="gears", tags="history")
    _post(store, ada, title="Poetry", body="Notes on the engine", tags="poems")
    _post(store, ada, title="Cooking", body="bread", tags="Food")

    assert {b.title for b in blog_service.list_feed(store, q="ENGINE").blogs} == {"Analytical Engine", "Poetry"}
    assert [b.title for b in blog_service.list_feed(store, q="food").blogs] == ["Cooking"]
    assert [b.title for b in blog_service.list_feed(store, tag="poems").blogs] == ["Poetry"]
    assert blog_service.list_feed(store, q="engine", tag="food").total == 0


def test_comments_newest_first_and_validated(store, ada, bob):
    blog = _post(store, ada)
    first = blog_service.add_comment(store, blog.id, bob, "  First!  ")
    second = blog_service.add_comment(store, blog.id, ada, "Thanks")
    doc = store.get("comments", first.id)
    doc["created_at"] = (first.created_at - timedelta(minutes=5)).isoformat()
    store.save("comments", doc)

    assert [c.id for c in blog_service.list_comments(store, blog.id)] == [second.id, first.id]
    assert blog_service.list_comments(store, blog.id)[1].content == "First!"

    with pytest.raises(ValidationError):
        blog_service.add_comment(store, blog.id, bob, "   ")
    with pytest.raises(NotFoundError):
        blog_service.add_comment(store, "missing", bob, "hello")
    assert store.count("comments") == 2


def test_related_blogs_share_tag_or_author(store, ada, bob):
    main = _post(store, ada, tags="python")
    same_author = _post(store, ada, title="Other", tags="misc")
    same_tag = _post(store, bob, title="Bob on Python", tags="Python")
    _post(store, bob, title="Unrelated", tags="misc")
    _post(store, bob, title="Hidden", tags="python", status=STATUS_DRAFT)

    related = {b.id for b in blog_service.related_blogs(store, main)}
    assert related == {same_author.id, same_tag.id}
