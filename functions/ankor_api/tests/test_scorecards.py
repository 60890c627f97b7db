import unittest

from ankor_api.tests.fake_supabase import ORG_ID, OTHER_ORG_ID, ApiTestCase, new_id

SKILL_ID = "44444444-4444-4444-8444-444444444444"


def subskill(name, **extra):
    return {"name": name, "skill_id": SKILL_ID, **extra}


class ScorecardCreateAndReadTests(ApiTestCase):
    def test_create_calls_transaction_rpc(self):
        template_id = new_id()
        self.db.rpc_results["create_scorecard_template_tx"] = template_id
        response = self.post(
            "/scorecard",
            {
                "org_id": ORG_ID,
                "name": " Tryouts ",
                "categories": [{"name": "Hitting", "subskills": [subskill("Contact")]}],
            },
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["template_id"], template_id)

        [(name, params)] = self.db.rpc_calls
        self.assertEqual(name, "create_scorecard_template_tx")
        self.assertEqual(params["p_template"]["name"], "Tryouts")
        self.assertTrue(params["p_template"]["is_active"])
        self.assertTrue(params["p_created_by"])

    def test_create_requires_subskills(self):
        response = self.post(
            "/scorecard",
            {"org_id": ORG_ID, "name": "Tryouts", "categories": [{"name": "Hitting", "subskills": []}]},
        )
        self.assertEqual(response.status_code, 400)

    def test_rating_bounds_are_checked(self):
        response = self.post(
            "/scorecard",
            {
                "org_id": ORG_ID,
                "name": "Tryouts",
                "categories": [
                    {"name": "Hitting", "subskills": [subskill("Contact", rating_min=5, rating_max=1)]}
                ],
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("rating_min must be less than or equal to rating_max", response.json()["error"])

    def test_list_orders_by_updated_at_and_searches(self):
        self.db.seed(
            "scorecard_templates",
            {"org_id": ORG_ID, "name": "Spring", "description": "pitching", "updated_at": "2024-03-01"},
            {"org_id": ORG_ID, "name": "Fall", "description": None, "updated_at": "2024-09-01"},
            {"org_id": ORG_ID, "name": "Winter", "description": "indoor", "updated_at": "2024-12-01"},
            {"org_id": OTHER_ORG_ID, "name": "Other", "updated_at": "2025-01-01"},
        )
        payload = self.get("/scorecard/list").json()
        self.assertEqual(payload["count"], 3)
        self.assertEqual([t["name"] for t in payload["items"]], ["Winter", "Fall", "Spring"])

        payload = self.get("/scorecard/list", limit=1, offset=1).json()
        self.assertEqual([t["name"] for t in payload["items"]], ["Fall"])

        payload = self.get("/scorecard/list", q="PITCH").json()
        self.assertEqual([t["name"] for t in payload["items"]], ["Spring"])

    def test_list_defaults_to_ten(self):
        self.db.seed(
            "scorecard_templates", *({"org_id": ORG_ID, "name": f"T{i}"} for i in range(12))
        )
        payload = self.get("/scorecard/list").json()
        self.assertEqual(payload["count"], 12)
        self.assertEqual(len(payload["items"]), 10)

    def test_get_sorts_categories_and_subskills(self):
        [template] = self.db.seed(
            "scorecard_templates",
            {
                "org_id": ORG_ID,
                "name": "Tryouts",
                "scorecard_categories": [
                    {"id": "c2", "position": 2, "scorecard_subskills": []},
                    {
                        "id": "c1",
                        "position": None,
                        "scorecard_subskills": [
                            {"id": "s2", "position": 5},
                            {"id": "s1", "position": 1},
                        ],
                    },
                ],
            },
        )
        response = self.get(f"/scorecard/{template['id']}")
        categories = response.json()["template"]["scorecard_categories"]
        self.assertEqual([c["id"] for c in categories], ["c1", "c2"])
        self.assertEqual([s["id"] for s in categories[0]["scorecard_subskills"]], ["s1", "s2"])

    def test_get_other_org_template_is_not_found(self):
        [template] = self.db.seed("scorecard_templates", {"org_id": OTHER_ORG_ID, "name": "X"})
        self.assertEqual(self.get(f"/scorecard/{template['id']}").status_code, 404)


class ScorecardUpdateTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        [self.template] = self.db.seed("scorecard_templates", {"org_id": ORG_ID, "name": "Tryouts"})
        self.cat_a, self.cat_b = self.db.seed(
            "scorecard_categories",
            {"template_id": self.template["id"], "name": "Hitting", "position": 1},
            {"template_id": self.template["id"], "name": "Fielding", "position": 4},
        )
        self.sub_a1, self.sub_a2, self.sub_b1 = self.db.seed(
            "scorecard_subskills",
            {"category_id": self.cat_a["id"], "name": "Contact", "position": 1},
            {"category_id": self.cat_a["id"], "name": "Power", "position": 7},
            {"category_id": self.cat_b["id"], "name": "Glove", "position": None},
        )

    def _patch(self, **changes):
        return self.patch(f"/scorecard/{self.template['id']}", {"org_id": ORG_ID, **changes})

    def _assert_rejected(self, response, message):
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"ok": False, "error": message})
        self.assertFalse([call for call in self.db.calls if call[1] in ("insert", "delete")])

    def test_requires_some_change(self):
        response = self._patch()
        self.assertEqual(response.status_code, 400)
        self.assertIn("No updates provided", response.json()["error"])

    def test_duplicate_remove_ids_rejected(self):
        response = self._patch(remove_subskill_ids=[self.sub_a1["id"], self.sub_a1["id"]])
        self.assertEqual(response.status_code, 400)
        self.assertIn("remove_subskill_ids contains duplicates", response.json()["error"])

    def test_unknown_template_is_not_found(self):
        response = self.patch(
            "/scorecard/99999999-9999-4999-8999-999999999999",
            {"org_id": ORG_ID, "remove_category_ids": [self.cat_a["id"]]},
        )
        self.assertEqual(response.status_code, 404)

    def test_remove_foreign_category(self):
        self._assert_rejected(
            self._patch(remove_category_ids=[new_id()]),
            "One or more category ids do not belong to this template.",
        )

    def test_add_subskill_to_unknown_category(self):
        self._assert_rejected(
            self._patch(add_subskills=[subskill("Arm", category_id=new_id())]),
            "One or more subskills refer to an invalid category.",
        )

    def test_add_subskill_to_removed_category(self):
        self._assert_rejected(
            self._patch(
                remove_category_ids=[self.cat_b["id"]],
                add_subskills=[subskill("Arm", category_id=self.cat_b["id"])],
            ),
            "Cannot add subskills to a category being removed.",
        )

    def test_remove_unknown_subskill(self):
        self._assert_rejected(
            self._patch(remove_subskill_ids=[new_id()]),
            "One or more subskill ids are invalid.",
        )

    def test_remove_subskill_of_other_template(self):
        [foreign] = self.db.seed("scorecard_subskills", {"category_id": new_id(), "name": "X"})
        self._assert_rejected(
            self._patch(remove_subskill_ids=[foreign["id"]]),
            "One or more subskills do not belong to this template.",
        )

    def test_removals(self):
        response = self._patch(
            remove_subskill_ids=[self.sub_a1["id"]], remove_category_ids=[self.cat_b["id"]]
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "ok": True,
                "added_category_ids": [],
                "removed_category_ids": [self.cat_b["id"]],
                "added_subskill_ids": [],
                "removed_subskill_ids": [self.sub_a1["id"]],
            },
        )
        self.assertEqual([c["id"] for c in self.db.rows("scorecard_categories")], [self.cat_a["id"]])
        self.assertNotIn(
            self.sub_a1["id"], [s["id"] for s in self.db.rows("scorecard_subskills")]
        )

    def test_added_categories_continue_after_max_position(self):
        response = self._patch(
            add_categories=[
                {"name": "Running", "subskills": [subskill("Speed"), subskill("Jump", position=9), subskill("Turns")]},
                {"name": "Throwing", "position": 20, "subskills": [subskill("Arm")]},
                {"name": "Mental", "subskills": [subskill("Focus")]},
            ]
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload["added_category_ids"]), 3)
        self.assertEqual(len(payload["added_subskill_ids"]), 5)

        categories = {c["name"]: c for c in self.db.rows("scorecard_categories")}
        self.assertEqual(categories["Running"]["position"], 5)
        self.assertEqual(categories["Throwing"]["position"], 20)
        self.assertEqual(categories["Mental"]["position"], 6)

        running = [
            (s["name"], s["position"])
            for s in self.db.rows("scorecard_subskills")
            if s["category_id"] == categories["Running"]["id"]
        ]
        self.assertEqual(running, [("Speed", 1), ("Jump", 9), ("Turns", 2)])

    def test_added_subskills_append_per_category(self):
        response = self._patch(
            add_subskills=[
                subskill("Bunt", category_id=self.cat_a["id"]),
                subskill("Slap", category_id=self.cat_a["id"], position=3),
                subskill("Drag", category_id=self.cat_a["id"]),
                subskill("Backhand", category_id=self.cat_b["id"], rating_min=1, rating_max=5),
            ]
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["added_subskill_ids"]), 4)

        inserted = [
            call[2] for call in self.db.calls if call[:2] == ("scorecard_subskills", "insert")
        ]
        self.assertEqual(len(inserted), 1)
        rows = inserted[0]
        self.assertEqual([(r["name"], r["position"]) for r in rows], [
            ("Bunt", 8), ("Slap", 3), ("Drag", 9), ("Backhand", 1),
        ])
        self.assertNotIn("rating_min", rows[0])
        self.assertEqual((rows[3]["rating_min"], rows[3]["rating_max"]), (1, 5))


class ScorecardListingTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        [self.template] = self.db.seed("scorecard_templates", {"org_id": ORG_ID, "name": "T"})
        [self.foreign] = self.db.seed("scorecard_templates", {"org_id": OTHER_ORG_ID, "name": "F"})
        self.second, self.first, self.foreign_category = self.db.seed(
            "scorecard_categories",
            {"template_id": self.template["id"], "name": "Second", "position": 2},
            {"template_id": self.template["id"], "name": "First", "position": 1},
            {"template_id": self.foreign["id"], "name": "Theirs", "position": 1},
        )
        self.db.seed(
            "scorecard_subskills",
            {"category_id": self.first["id"], "name": "b", "position": 2},
            {"category_id": self.first["id"], "name": "a", "position": 1},
            {"category_id": self.foreign_category["id"], "name": "x", "position": 1},
        )

    def test_categories_by_template(self):
        payload = self.get("/scorecard/categories", scorecard_template_id=self.template["id"]).json()
        self.assertEqual(payload["count"], 2)
        self.assertEqual([c["name"] for c in payload["items"]], ["First", "Second"])

    def test_categories_are_paged(self):
        payload = self.get(
            "/scorecard/categories", scorecard_template_id=self.template["id"], limit=1, offset=1
        ).json()
        self.assertEqual(payload["count"], 2)
        self.assertEqual([c["name"] for c in payload["items"]], ["Second"])

    def test_categories_of_foreign_template_are_empty(self):
        payload = self.get("/scorecard/categories", scorecard_template_id=self.foreign["id"]).json()
        self.assertEqual(payload, {"ok": True, "count": 0, "items": []})

    def test_categories_require_template_id(self):
        self.assertEqual(self.get("/scorecard/categories").status_code, 400)

    def test_subskills_by_category(self):
        payload = self.get("/scorecard/subskills", category_id=self.first["id"]).json()
        self.assertEqual(payload["count"], 2)
        self.assertEqual([s["name"] for s in payload["items"]], ["a", "b"])

    def test_subskills_of_foreign_category_are_empty(self):
        payload = self.get("/scorecard/subskills", category_id=self.foreign_category["id"]).json()
        self.assertEqual(payload, {"ok": True, "count": 0, "items": []})



if __name__ == "__main__":
    unittest.main()
