"""
Tests for renderable.py - projecting stored records into render documents.
"""

from bson import ObjectId

from conftest import asset
from renderable import build_cv, build_portfolio, select_assets


def _ids(items):
    return [a["id"] for a in items]


class TestSelectAssets:
    """Hero and gallery selection for one portfolio project."""

    def test_empty_subset_means_all_assets_in_display_order(self):
        assets = [asset("b", order=1), asset("a", order=0), asset("c", order=2)]
        hero, gallery = select_assets(assets, [])
        assert hero["id"] == "a"
        assert _ids(gallery) == ["b", "c"]

    def test_assets_without_file_are_skipped(self):
        assets = [asset("a", order=0), asset("b", order=1, file_name="")]
        hero, gallery = select_assets(assets)
        assert hero["id"] == "a"
        assert gallery == []

    def test_link_override_beats_project_hero(self):
        """The link's hero override wins when it is among the selected assets."""
        assets = [asset("a", order=0, hero=True), asset("b", order=1)]
        hero, gallery = select_assets(assets, [], "b")
        assert hero["id"] == "b"
        assert _ids(gallery) == ["a"]

    def test_override_outside_subset_is_ignored(self):
        """An override that was not selected falls back to the project hero."""
        assets = [asset("a", order=0), asset("b", order=1, hero=True), asset("c", order=2)]
        hero, gallery = select_assets(assets, ["b", "c"], "a")
        assert hero["id"] == "b"
        assert _ids(gallery) == ["c"]

    def test_project_hero_used_even_when_not_selected(self):
        assets = [asset("a", order=0, hero=True), asset("b", order=1), asset("c", order=2)]
        hero, gallery = select_assets(assets, ["b", "c"])
        assert hero["id"] == "a"
        assert _ids(gallery) == ["b", "c"]

    def test_no_assets(self):
        assert select_assets([]) == (None, [])


class TestBuildPortfolio:
    """Tests for build_portfolio."""

    def test_round_trip_includes_every_asset_hero_first(self, make_project, make_portfolio):
        """Projects [A, B] with empty subsets project every asset that has a file."""
        a = make_project(project_name="A", assets=[
            asset("a1", order=0), asset("a2", order=1, hero=True), asset("a3", order=2, file_name=""),
        ])
        b = make_project(project_name="B", assets=[asset("b1", order=0), asset("b2", order=1)])
        pid = make_portfolio([a, b])

        document = build_portfolio(pid)

        assert [p.name for p in document.projects] == ["A", "B"]
        first, second = document.projects
        assert first.hero.path == "/uploads/projects/optimized/a2.jpeg"
        assert [i.path for i in first.images] == ["/uploads/projects/optimized/a1.jpeg"]
        assert second.hero.path.endswith("b1.jpeg")
        assert [i.path for i in second.images] == ["/uploads/projects/optimized/b2.jpeg"]

    def test_links_are_ordered_by_display_order(self, make_project, mongo_db):
        a = make_project(project_name="A")
        b = make_project(project_name="B")
        pid = mongo_db["portfolio"].insert_one({
            "portfolio_name": "Ordered",
            "projects": [{"project_id": a, "display_order": 2}, {"project_id": b, "display_order": 1}],
        }).inserted_id
        document = build_portfolio(str(pid))
        assert [p.name for p in document.projects] == ["B", "A"]

    def test_missing_project_is_skipped(self, make_project, make_portfolio):
        """A link to a deleted project does not break the document."""
        a = make_project(project_name="A")
        pid = make_portfolio([str(ObjectId()), a])
        document = build_portfolio(pid)
        assert [p.name for p in document.projects] == ["A"]

    def test_unknown_or_invalid_id_returns_none(self, mongo_db):
        assert build_portfolio(str(ObjectId())) is None
        assert build_portfolio("not-an-id") is None

    def test_cv_omitted_unless_included(self, make_portfolio):
        document = build_portfolio(make_portfolio())
        assert document.cv is None
        assert "cv" not in document.to_wire()

    def test_cv_included(self, make_portfolio, mongo_db):
        mongo_db["personalinfo"].insert_one({"_id": "profile", "name": "Ada Grey",
                                             "professional_title": "Architect"})
        document = build_portfolio(make_portfolio(cv_included=True))
        wire = document.to_wire()
        assert wire["includeCV"] is True
        assert wire["cv"]["personalInfo"]["name"] == "Ada Grey"
        assert wire["personalHeader"] == "Ada Grey — Architect"

    def test_wire_keys_are_camel_case_with_explicit_nulls(self, make_project, make_portfolio):
        pid = make_portfolio([make_project()])
        project = build_portfolio(pid).to_wire()["projects"][0]
        assert project["projectType"] == "CULTURAL"
        assert project["clientName"] is None
        assert project["hero"] is None

    def test_portfolio_settings_override_global(self, make_portfolio, mongo_db):
        mongo_db["appsettings"].insert_one({"_id": "global", "color_scheme": "modernBlue",
                                            "margins": {"top": 20, "bottom": 20, "left": 20, "right": 20}})
        pid = make_portfolio(settings={"colorScheme": "warmMinimal", "margins": {"top": 0}})
        document = build_portfolio(pid)
        assert document.color_scheme.accent == "#EA580C"
        assert document.margins.top == 0
        assert document.margins.left == 20

    def test_stored_null_name_does_not_break_the_document(self, make_project, make_portfolio):
        pid = make_portfolio([make_project(project_name=None)])
        assert build_portfolio(pid).projects[0].name == ""


class TestBuildCV:
    """Tests for build_cv."""

    def test_empty_store_gives_empty_cv(self, mongo_db):
        document = build_cv()
        assert document.cv.is_empty()
        assert document.personal_header is None

    def test_current_role_has_no_end_date(self, mongo_db):
        mongo_db["cvexperience"].insert_one({
            "company_name": "Field Studio", "position_title": "Architect", "location": "Bristol",
            "start_date": "2020-01-01T00:00:00+00:00", "end_date": "2023-01-01T00:00:00+00:00",
            "is_current": True, "description": "Libraries", "display_order": 0,
        })
        experience = build_cv().cv.experiences[0]
        assert experience.is_current is True
        assert experience.end_date is None

    def test_entries_sorted_by_display_order(self, mongo_db):
        for order, name in [(2, "Second"), (1, "First")]:
            mongo_db["cveducation"].insert_one({"institution_name": name, "degree_type": "MArch",
                                                "display_order": order})
        names = [e.institution_name for e in build_cv().cv.education]
        assert names == ["First", "Second"]

    def test_blank_personal_info_is_absent(self, mongo_db):
        """A saved profile with no values left does not make the CV non-empty."""
        mongo_db["personalinfo"].insert_one({"_id": "profile", "name": None, "phone": None})
        document = build_cv()
        assert document.cv.personal_info is None
        assert document.cv.is_empty()

    def test_stored_nulls_in_required_fields(self, mongo_db):
        mongo_db["cvexperience"].insert_one({"company_name": None, "position_title": "Architect",
                                             "display_order": 0})
        mongo_db["cvskill"].insert_one({"category": None, "skill_name": None, "display_order": 0})
        cv = build_cv().cv
        assert cv.experiences[0].company_name == ""
        assert (cv.skills[0].skill_name, cv.skills[0].category) == ("", "OTHER")
