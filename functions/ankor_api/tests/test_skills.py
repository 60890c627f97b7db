import re
import unittest

from ankor_api.services.skills import (
    infer_extension,
    infer_media_type,
    parse_storage_object_url,
    resolve_skills_bucket,
    sanitize_file_name,
)
from ankor_api.tests.fake_supabase import ORG_ID, OTHER_ORG_ID, ApiTestCase

BUCKET = "skills-media"


class SkillMediaHelpersTests(unittest.TestCase):
    def test_sanitize_file_name(self):
        self.assertEqual(sanitize_file_name("clips/My Swing (1).MP4"), "My_Swing__1_.MP4")
        self.assertEqual(sanitize_file_name("C:\\videos\\drill.mov"), "drill.mov")
        self.assertEqual(sanitize_file_name("   "), "upload")

    def test_infer_extension(self):
        self.assertEqual(infer_extension("swing.MP4", "video/mp4"), ".mp4")
        self.assertEqual(infer_extension("swing", "video/quicktime"), ".mov")
        self.assertEqual(infer_extension("notes", "IMAGE/PNG"), ".png")
        self.assertEqual(infer_extension("blob", "application/zip"), ".bin")

    def test_infer_media_type(self):
        self.assertEqual(infer_media_type("video/mp4"), "video")
        self.assertEqual(infer_media_type("Image/webp"), "image")
        self.assertEqual(infer_media_type("application/pdf"), "document")

    def test_resolve_bucket_aliases(self):
        for value in (None, "", "  ", "skills-media", "SKILLS-MEDIA", "skills_media",
                      "SKILLS_MEDIA", "SKILLS_MEDIA_BUCKET"):
            self.assertEqual(resolve_skills_bucket(value, BUCKET), BUCKET, value)
        self.assertIsNone(resolve_skills_bucket("avatars", BUCKET))

    def test_parse_storage_object_url(self):
        base = "https://project.supabase.test/storage/v1/object"
        self.assertEqual(
            parse_storage_object_url(f"{base}/public/skills-media/orgs/o/skills/s/a.mp4"),
            ("skills-media", "orgs/o/skills/s/a.mp4"),
        )
        self.assertEqual(
            parse_storage_object_url(f"{base}/sign/skills-media/a.mp4?token=x"),
            ("skills-media", "a.mp4"),
        )
        self.assertEqual(
            parse_storage_object_url(f"{base}/skills-media/a.mp4"), ("skills-media", "a.mp4")
        )
        self.assertIsNone(parse_storage_object_url(f"{base}/public/skills-media"))
        self.assertIsNone(parse_storage_object_url("https://cdn.test/video.mp4"))
        self.assertIsNone(parse_storage_object_url("not a url"))


class SkillRoutesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        response = self.post(
            "/skills",
            {
                "org_id": ORG_ID,
                "category": " Hitting ",
                "title": "Load and stride",
                "description": "   ",
                "level": " beginner ",
            },
        )
        self.assertEqual(response.status_code, 201)
        self.skill = response.json()["skill"]

    def test_create_trims_and_nulls_blank_text(self):
        self.assertEqual(self.skill["category"], "Hitting")
        self.assertIsNone(self.skill["description"])
        self.assertEqual(self.skill["level"], "beginner")

    def test_list_filters_and_search(self):
        self.post("/skills", {"org_id": ORG_ID, "category": "Fielding", "title": "Backhand"})
        self.post("/skills", {"org_id": ORG_ID, "category": "hitting", "title": "Bunting"})

        response = self.get("/skills/list", category="HITTING")
        payload = response.json()
        self.assertEqual(payload["count"], 2)
        self.assertEqual([s["title"] for s in payload["items"]], ["Bunting", "Load and stride"])

        response = self.get("/skills/list", q="field")
        self.assertEqual([s["title"] for s in response.json()["items"]], ["Backhand"])

        response = self.get("/skills/list", limit=0)
        self.assertEqual(len(response.json()["items"]), 1)

    def test_list_rejects_bad_sport_id(self):
        response = self.get("/skills/list", sport_id="nope")
        self.assertEqual(response.status_code, 400)

    def test_athletes_can_read_skills(self):
        token = self.db.add_member(ORG_ID, "athlete", email="a@ankor.io")
        response = self.client.get(
            f"/api/skills/{self.skill['id']}",
            params={"org_id": ORG_ID},
            headers=self.auth_headers(token),
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.post(
            "/api/skills",
            json={"org_id": ORG_ID, "category": "x", "title": "y"},
            headers=self.auth_headers(token),
        )
        self.assertEqual(response.status_code, 403)

    def test_update_skill(self):
        response = self.patch(
            f"/skills/{self.skill['id']}", {"title": "Stride", "status": ""}, org_id=ORG_ID
        )
        self.assertEqual(response.status_code, 200)
        skill = response.json()["skill"]
        self.assertEqual(skill["title"], "Stride")
        self.assertIsNone(skill["status"])

    def test_update_missing_skill(self):
        response = self.patch(
            "/skills/99999999-9999-4999-8999-999999999999", {"title": "x"}, org_id=ORG_ID
        )
        self.assertEqual(response.status_code, 404)

    def test_upload_url(self):
        response = self.post(
            "/skills/media/upload-url",
            {
                "org_id": ORG_ID,
                "skill_id": self.skill["id"],
                "file_name": "swing clip",
                "content_type": "video/quicktime",
                "title": "Front view",
                "position": 2,
            },
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        upload = payload["upload"]
        self.assertEqual(upload["bucket"], BUCKET)
        self.assertRegex(
            upload["object_path"],
            rf"^orgs/{ORG_ID}/skills/{self.skill['id']}/[0-9a-f-]{{36}}\.mov$",
        )
        self.assertEqual(upload["token"], "upload-token")
        self.assertTrue(upload["signed_url"])
        self.assertTrue(upload["public_url"].endswith(upload["object_path"]))
        self.assertEqual(
            payload["media"],
            {
                "type": "video",
                "url": upload["public_url"],
                "title": "Front view",
                "description": None,
                "thumbnail_url": None,
                "position": 2,
            },
        )

    def test_upload_url_for_foreign_skill(self):
        [other] = self.db.seed("skills", {"org_id": OTHER_ORG_ID, "title": "x"})
        response = self.post(
            "/skills/media/upload-url",
            {
                "org_id": ORG_ID,
                "skill_id": other["id"],
                "file_name": "a.mp4",
                "content_type": "video/mp4",
            },
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Skill not found")

    def test_upload_rejects_bad_thumbnail(self):
        response = self.post(
            "/skills/media/upload-url",
            {
                "org_id": ORG_ID,
                "skill_id": self.skill["id"],
                "file_name": "a.mp4",
                "content_type": "video/mp4",
                "thumbnail_url": "nope",
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("thumbnail_url must be a valid URL", response.json()["error"])

    def _media(self, **body):
        return self.post("/skills/media", {"org_id": ORG_ID, "skill_id": self.skill["id"], **body})

    def test_create_media_from_object_path(self):
        response = self._media(object_path="orgs/o/a.mp4", title="Clip", position=1)
        self.assertEqual(response.status_code, 201)
        media = response.json()["media"]
        self.assertEqual(media["object_path"], "orgs/o/a.mp4")
        self.assertEqual(media["bucket"], BUCKET)
        self.assertEqual(media["position"], 1)

    def test_create_media_from_storage_url(self):
        url = f"{self.db.url}/storage/v1/object/public/skills-media/orgs/o/b.mp4"
        response = self._media(url=url)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["media"]["object_path"], "orgs/o/b.mp4")

    def test_create_media_requires_path(self):
        response = self._media(url="https://cdn.test/video.mp4")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "object_path or url is required")

    def test_create_media_rejects_unknown_bucket(self):
        response = self._media(object_path="a.mp4", bucket="avatars")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid bucket")

    def test_create_media_adapts_to_legacy_columns(self):
        self.db.missing_columns["skill_video_map"] = {"object_path", "position", "title"}
        response = self._media(object_path="orgs/o/c.mp4", title="Clip", position=3)
        self.assertEqual(response.status_code, 201)

        [row] = self.db.rows("skill_video_map")
        self.assertEqual(row["storage_path"], "orgs/o/c.mp4")
        self.assertEqual(row["sort_order"], 3)
        self.assertNotIn("title", row)
        media = response.json()["media"]
        self.assertEqual(media["object_path"], "orgs/o/c.mp4")
        self.assertEqual(media["position"], 3)

    def test_create_media_gives_up_on_unknown_column(self):
        self.db.missing_columns["skill_video_map"] = {"skill_id"}
        response = self._media(object_path="orgs/o/d.mp4")
        self.assertEqual(response.status_code, 500)
        self.assertIn('column "skill_id"', response.json()["error"])

    def test_playback_signs_object_path_with_clamped_expiry(self):
        self.db.seed(
            "skill_video_map",
            {"skill_id": self.skill["id"], "bucket": BUCKET, "object_path": "orgs/o/a.mp4"},
        )
        response = self.get(f"/skills/{self.skill['id']}/media/playback", expires_in=5)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["expires_in"], 60)
        self.assertTrue(re.search(r"/sign/skills-media/orgs/o/a\.mp4", payload["play_url"]))
        self.assertEqual(self.db.signed_urls, [(BUCKET, "orgs/o/a.mp4", 60)])

        self.get(f"/skills/{self.skill['id']}/media/playback")
        self.assertEqual(self.db.signed_urls[-1][2], 3600)
        self.get(f"/skills/{self.skill['id']}/media/playback", expires_in=999999)
        self.assertEqual(self.db.signed_urls[-1][2], 86400)

    def test_playback_falls_back_to_stored_url(self):
        self.db.seed(
            "skill_video_map",
            {"skill_id": self.skill["id"], "storage_path": None, "url": "https://cdn.test/v.mp4"},
        )
        response = self.get(f"/skills/{self.skill['id']}/media/playback")
        payload = response.json()
        self.assertEqual(payload["play_url"], "https://cdn.test/v.mp4")
        self.assertIsNone(payload["expires_in"])

    def test_playback_parses_storage_url(self):
        self.db.seed(
            "skill_video_map",
            {
                "skill_id": self.skill["id"],
                "url": f"{self.db.url}/storage/v1/object/public/legacy/x/y.mp4",
            },
        )
        self.get(f"/skills/{self.skill['id']}/media/playback")
        self.assertEqual(self.db.signed_urls[-1][:2], ("legacy", "x/y.mp4"))

    def test_playback_without_media(self):
        response = self.get(f"/skills/{self.skill['id']}/media/playback")
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
