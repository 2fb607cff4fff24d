import os
import tempfile
import unittest
from unittest import mock

from kinship.core import person_repository as repo
from kinship.core.attachment import append_media, attach, load_categories
from kinship.core.errors import AttachmentConflict, PersonNotFound
from kinship.core.media_factory import MediaFields, build_media_items
from kinship.core.signed_urls import materialize_person
from kinship.schemas.media_schema import ImageItem, PdfItem
from kinship.schemas.person_schema import PersonOut
from kinship.storage import StagedFile
from kinship.tests.helpers import add_person, file_session_factory, memory_session_factory


class SigningStub:
    def create_signed_url(self, path, expires_in):
        return f"signed:{path}"


def image(item_id: str, category: str = "MEDICAL") -> ImageItem:
    return ImageItem(id=item_id, title=item_id, category=category, url=f"persons/x/{item_id}")


class AttachTests(unittest.TestCase):
    def test_creates_category_and_default_sub_category(self):
        categories = []
        category = attach(categories, "MEDICAL", "Things", [image("image-1")])

        self.assertEqual(category.key, 0)
        self.assertEqual(category.val, "MEDICAL")
        self.assertEqual(len(category.sub_categories), 1)
        self.assertEqual(category.sub_categories[0].key, 0)
        self.assertEqual(category.sub_categories[0].val, "Things")
        self.assertEqual([i.id for i in category.sub_categories[0].items], ["image-1"])

    def test_reuses_existing_nodes(self):
        categories = []
        attach(categories, "MEDICAL", "Things", [image("image-1")])
        attach(categories, "MEDICAL", "Things", [image("image-2")])

        self.assertEqual(len(categories), 1)
        self.assertEqual(len(categories[0].sub_categories), 1)
        items = categories[0].sub_categories[0].items
        self.assertEqual([i.id for i in items], ["image-1", "image-2"])

    def test_new_category_key_is_list_length(self):
        categories = []
        attach(categories, "MEDICAL", "Things", [image("image-1")])
        family = attach(categories, "FAMILY", "Things", [image("image-2", "FAMILY")])
        self.assertEqual(family.key, 1)

    def test_new_sub_category_key_is_list_length(self):
        categories = []
        attach(categories, "MEDICAL", "Things", [image("image-1")])
        category = attach(categories, "MEDICAL", "Scans", [image("image-2")])
        self.assertEqual([s.key for s in category.sub_categories], [0, 1])
        self.assertEqual([s.val for s in category.sub_categories], ["Things", "Scans"])


class AppendMediaTests(unittest.TestCase):
    def setUp(self):
        self.Session = memory_session_factory()
        self.db = self.Session()
        add_person(self.db, "P1", name="Ann")

    def tearDown(self):
        self.db.close()

    def stored_categories(self):
        with self.Session() as fresh:
            return load_categories(repo.require_person(fresh, "P1").categories)

    def test_image_then_pdf_share_one_sub_category(self):
        append_media(self.db, "P1", "MEDICAL", [image("image-1")])
        pdf = PdfItem(id="pdf-1", title="report", category="MEDICAL", url="persons/Ann/pdfs/r.pdf")
        append_media(self.db, "P1", "MEDICAL", [pdf])

        categories = self.stored_categories()
        self.assertEqual(len(categories), 1)
        self.assertEqual(categories[0].val, "MEDICAL")
        things = categories[0].sub_categories[0]
        self.assertEqual(things.val, "Things")
        self.assertEqual([i.type for i in things.items], ["image", "pdf"])

    def test_bumps_version(self):
        append_media(self.db, "P1", "MEDICAL", [image("image-1")])
        with self.Session() as fresh:
            self.assertEqual(repo.require_person(fresh, "P1").version, 2)

    def test_unknown_person(self):
        with self.assertRaises(PersonNotFound):
            append_media(self.db, "nobody", "MEDICAL", [image("image-1")])

    def test_all_items_of_a_batch_land_together(self):
        append_media(self.db, "P1", "FAMILY", [image("image-1"), image("image-2")])
        items = self.stored_categories()[0].sub_categories[0].items
        self.assertEqual([i.id for i in items], ["image-1", "image-2"])

    def test_built_items_survive_storage_and_signing(self):
        fields = MediaFields(category="FAMILY", title="talk", tags="a,b", text="memo")
        audio_file = StagedFile("MEDIA-1-1.mp3", "talk.mp3", "audio/mpeg", 3, "persons/Ann/audios/t.mp3")
        note_file = StagedFile("MEDIA-2-2.png", "pic.png", "image/png", 3, "persons/Ann/notes/p.png")
        built = build_media_items("audio", [audio_file], fields) + build_media_items(
            "note", [note_file], fields
        )

        append_media(self.db, "P1", "FAMILY", built)
        with self.Session() as fresh:
            person = PersonOut.model_validate(repo.require_person(fresh, "P1"))
        signed = materialize_person(person, SigningStub())

        stored = signed.categories[0].sub_categories[0].items
        self.assertEqual(
            [i.model_dump(exclude={"url", "audio", "image"}) for i in stored],
            [i.model_dump(exclude={"url", "audio", "image"}) for i in built],
        )
        self.assertEqual(stored[0].url, "signed:persons/Ann/audios/t.mp3")
        self.assertEqual(stored[1].image.url, "signed:persons/Ann/notes/p.png")


class ConcurrentAppendTests(unittest.TestCase):
    """Two writers on separate connections to the same database file."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.Session = file_session_factory(os.path.join(self.tmp.name, "race.db"))
        with self.Session() as db:
            add_person(db, "P1", name="Ann")

    def tearDown(self):
        self.Session.kw["bind"].dispose()
        self.tmp.cleanup()

    def racing_lock(self):
        """
        lock_person that lets another writer append between our read and
        our commit, exactly once.
        """
        real_lock = repo.lock_person
        calls = []

        def lock(db, id_number):
            calls.append(id_number)
            person = real_lock(db, id_number)
            if len(calls) == 1:
                with self.Session() as other:
                    append_media(other, id_number, "FAMILY", [image("image-other", "FAMILY")])
            return person

        return lock

    def stored_ids(self):
        with self.Session() as db:
            categories = load_categories(repo.require_person(db, "P1").categories)
        return [i.id for c in categories for s in c.sub_categories for i in s.items]

    def test_stale_write_is_retried_from_a_fresh_read(self):
        with mock.patch.object(repo, "lock_person", side_effect=self.racing_lock()):
            with self.Session() as db:
                append_media(db, "P1", "FAMILY", [image("image-mine", "FAMILY")])

        self.assertEqual(self.stored_ids(), ["image-other", "image-mine"])

    def test_gives_up_after_max_attempts(self):
        with mock.patch.object(repo, "lock_person", side_effect=self.racing_lock()):
            with self.Session() as db:
                with self.assertRaises(AttachmentConflict):
                    append_media(
                        db, "P1", "FAMILY", [image("image-mine", "FAMILY")], max_attempts=1
                    )

        self.assertEqual(self.stored_ids(), ["image-other"])


if __name__ == "__main__":
    unittest.main()
