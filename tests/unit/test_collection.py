import pytest

from src.domain.entities.collection import ImageCollection
from src.domain.errors import ImageNotFound


@pytest.fixture()
def collection(image_factory):
    col = ImageCollection()
    col.add_images([image_factory(f"img_{i}", name=f"p{i}.png") for i in range(1, 4)])
    return col


def test_first_added_image_becomes_current(collection):
    assert collection.current_id == "img_1"
    assert collection.ids == ["img_1", "img_2", "img_3"]


def test_adding_to_non_empty_collection_keeps_selection(collection, image_factory):
    collection.select_image("img_2")
    collection.add_images([image_factory("img_4")])
    assert collection.current_id == "img_2"


def test_removing_current_promotes_first_remaining(collection):
    collection.select_image("img_2")
    collection.remove_image("img_2")
    assert collection.current_id == "img_1"
    collection.remove_image("img_1")
    assert collection.current_id == "img_3"
    collection.remove_image("img_3")
    assert collection.current_id is None
    assert collection.current is None


def test_removing_other_image_keeps_selection(collection):
    collection.select_image("img_3")
    collection.remove_image("img_1")
    assert collection.current_id == "img_3"


def test_update_of_other_image_leaves_current_preview(collection):
    before = collection.current
    collection.update_image("img_2", preview_bytes=b"new", width=9)
    assert collection.current is before
    assert collection.get("img_2").preview_bytes == b"new"
    assert collection.current_id == "img_1"


def test_unknown_ids(collection):
    with pytest.raises(ImageNotFound):
        collection.get("img_9")
    with pytest.raises(ImageNotFound):
        collection.select_image("img_9")
    with pytest.raises(ImageNotFound):
        collection.remove_image("img_9")


def test_duplicate_ids_are_rejected(collection, image_factory):
    with pytest.raises(ValueError):
        collection.add_images([image_factory("img_1")])


def test_in_order_follows_collection_order(collection):
    assert [img.id for img in collection.in_order(["img_3", "img_1", "img_7"])] == ["img_1", "img_3"]


def test_clear(collection):
    collection.clear()
    assert len(collection) == 0
    assert collection.current_id is None


def test_only_newest_token_commits(collection):
    older = collection.issue_token("img_1")
    newer = collection.issue_token("img_1")
    assert collection.commit_preview("img_1", newer, preview_bytes=b"newer")
    assert not collection.commit_preview("img_1", older, preview_bytes=b"older")
    assert collection.get("img_1").preview_bytes == b"newer"


def test_tokens_are_per_image(collection):
    first = collection.issue_token("img_1")
    collection.issue_token("img_2")
    assert collection.commit_preview("img_1", first, preview_bytes=b"ok")


def test_commit_after_removal_is_dropped(collection):
    token = collection.issue_token("img_2")
    collection.remove_image("img_2")
    assert not collection.commit_preview("img_2", token, preview_bytes=b"late")
