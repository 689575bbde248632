"""
Tests for the content rewrite engine.

The LLM is scripted: each test queues exactly the responses the engine
should ask for, in order.
"""

from uuid import uuid4

import pytest

from auditflow.analysis.text import flesch_reading_ease, keyword_positions
from auditflow.errors import GenerationError, NotFoundError, ValidationError
from auditflow.rewriter import ContentRewriter, RewriteParams, clean_keywords, parse_rewrite_output
from conftest import EEAT_JSON, rewrite_json

ORIGINAL = "Search engines reward helpful pages. Our guide explains how to rank better."


@pytest.fixture
def rewriter(database, llm, retry_config):
    return ContentRewriter(db=database, llm=llm, call_timeout=5.0, retry_config=retry_config)


def params(project, keywords, preserve_eeat=False, **kwargs) -> RewriteParams:
    return RewriteParams(
        project_id=project.id,
        original_content=kwargs.pop("original_content", ORIGINAL),
        target_keywords=keywords,
        preserve_eeat=preserve_eeat,
        **kwargs,
    )


class TestParsing:

    def test_fenced_json_accepted(self):
        text = "```json\n" + rewrite_json("New text", ["seo"]) + "\n```"
        assert parse_rewrite_output(text).rewritten_content == "New text"

    @pytest.mark.parametrize("text", [
        "Here is your rewrite!",
        '{"rewritten_content": "x"}',
        '{"rewritten_content": "x", "keywords_incorporated": [], "notes": "extra"}',
        '{"rewritten_content": 5, "keywords_incorporated": []}',
        '{"rewritten_content": "", "keywords_incorporated": []}',
    ])
    def test_malformed_output_is_generation_error(self, text):
        with pytest.raises(GenerationError):
            parse_rewrite_output(text)

    def test_clean_keywords(self):
        assert clean_keywords([" SEO ", "seo", "", "content  marketing"]) == ["SEO", "content  marketing"]


class TestRewriteContent:

    @pytest.mark.asyncio
    async def test_rewrite_contains_keyword_phrase(self, rewriter, llm, principal, project):
        content = "Good seo optimization starts with helpful pages. Our guide explains how to rank better."
        llm.queue(rewrite_json(content, ["seo optimization"]))

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo optimization"]))

        assert "seo optimization" in rewrite["rewrittenContent"].lower()
        assert rewrite["keywordCoverageIncomplete"] is False
        assert rewrite["keywordsIncorporated"] == ["seo optimization"]
        assert rewrite["originalContent"] == ORIGINAL
        assert rewrite["contentLength"] == len(content)
        assert rewrite["readabilityScore"] == flesch_reading_ease(content)
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_keyword_usage_counts_and_positions(self, rewriter, llm, principal, project):
        content = "SEO tips. More seo tips for SEO teams."
        llm.queue(rewrite_json(content, ["seo"]))

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo"]))

        usage = rewrite["keywordUsage"][0]
        assert usage["keyword"] == "seo"
        assert usage["original_count"] == 0
        assert usage["new_count"] == 3
        assert usage["positions"] == keyword_positions(content, "seo")

    @pytest.mark.asyncio
    async def test_missing_keyword_gets_one_repair(self, rewriter, llm, principal, project):
        llm.queue(
            rewrite_json("Helpful pages rank well.", []),
            rewrite_json("Helpful pages with link building rank well.", ["link building"]),
        )

        rewrite = await rewriter.rewrite_content(principal, params(project, ["link building"]))

        assert rewrite["keywordCoverageIncomplete"] is False
        assert "link building" in rewrite["rewrittenContent"]
        assert len(llm.prompts) == 2
        assert '"link building"' in llm.prompts[1]

    @pytest.mark.asyncio
    async def test_coverage_flagged_when_repair_fails(self, rewriter, llm, principal, project):
        llm.queue(
            rewrite_json("Helpful pages about seo rank well.", ["seo"]),
            rewrite_json("Helpful pages about seo rank very well.", ["seo"]),
        )

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo", "schema markup"]))

        assert rewrite["keywordCoverageIncomplete"] is True
        assert rewrite["keywordsIncorporated"] == ["seo"]
        assert len(llm.prompts) == 2

    @pytest.mark.asyncio
    async def test_unparseable_output_is_retried_with_stricter_prompt(self, rewriter, llm, principal, project):
        llm.queue(
            "Sure! Here is the rewrite you asked for.",
            rewrite_json("All about seo.", ["seo"]),
        )

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo"]))

        assert rewrite["rewrittenContent"] == "All about seo."
        assert len(llm.prompts) == 2
        assert "could not be parsed" in llm.prompts[1]

    @pytest.mark.asyncio
    async def test_gives_up_after_two_parse_retries(self, rewriter, llm, principal, project, database):
        llm.queue("nope", "still nope", "never json")

        with pytest.raises(GenerationError):
            await rewriter.rewrite_content(principal, params(project, ["seo"]))

        assert len(llm.prompts) == 3
        stored = await rewriter.get_project_rewrites(principal, project.id)
        assert len(stored) == 1
        assert stored[0]["status"] == "failed"
        assert "rewrite schema" in stored[0]["errorMessage"]
        assert stored[0]["rewrittenContent"] is None
        assert stored[0]["originalContent"] == ORIGINAL
        assert stored[0]["targetKeywords"] == ["seo"]

    @pytest.mark.asyncio
    async def test_llm_outage_records_failed_version(self, rewriter, llm, principal, project):
        llm.queue(*[GenerationError("overloaded")] * 3)

        with pytest.raises(GenerationError):
            await rewriter.rewrite_content(principal, params(project, ["seo"]))

        stored = await rewriter.get_project_rewrites(principal, project.id)
        assert [(r["status"], r["errorMessage"]) for r in stored] == [("failed", "overloaded")]

    @pytest.mark.asyncio
    async def test_failed_repair_keeps_first_draft(self, rewriter, llm, principal, project):
        llm.queue(rewrite_json("Helpful pages rank well.", []), "garbage", "garbage", "garbage")

        rewrite = await rewriter.rewrite_content(principal, params(project, ["link building"]))

        assert rewrite["status"] == "completed"
        assert rewrite["rewrittenContent"] == "Helpful pages rank well."
        assert rewrite["keywordCoverageIncomplete"] is True
        assert rewrite["keywordsIncorporated"] == []
        assert len(llm.prompts) == 4
        stored = await rewriter.get_project_rewrites(principal, project.id)
        assert [r["id"] for r in stored] == [rewrite["id"]]

    @pytest.mark.asyncio
    async def test_llm_outage_is_retried(self, rewriter, llm, principal, project):
        llm.queue(GenerationError("overloaded"), rewrite_json("All about seo.", ["seo"]))

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo"]))
        assert rewrite["rewrittenContent"] == "All about seo."

    @pytest.mark.asyncio
    async def test_eeat_signals_assessed_when_preserved(self, rewriter, llm, principal, project):
        llm.queue(rewrite_json("All about seo.", ["seo"]), EEAT_JSON)

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo"], preserve_eeat=True))

        assert rewrite["preserveEEAT"] is True
        assert rewrite["eeatSignals"]["trustworthiness"] == 90
        assert "E-E-A-T" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_eeat_failure_degrades_to_neutral(self, rewriter, llm, principal, project):
        llm.queue(rewrite_json("All about seo.", ["seo"]), "no idea")

        rewrite = await rewriter.rewrite_content(principal, params(project, ["seo"], preserve_eeat=True))

        assert rewrite["eeatSignals"] == {
            "experience": 50, "expertise": 50, "authoritativeness": 50,
            "trustworthiness": 50, "overall": 50,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content,keywords", [("   ", ["seo"]), (ORIGINAL, []), (ORIGINAL, ["  "])])
    async def test_invalid_input(self, rewriter, llm, principal, project, content, keywords):
        with pytest.raises(ValidationError):
            await rewriter.rewrite_content(principal, params(project, keywords, original_content=content))
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_foreign_project_not_found(self, rewriter, llm, other_principal, project):
        with pytest.raises(NotFoundError):
            await rewriter.rewrite_content(other_principal, params(project, ["seo"]))
        assert llm.prompts == []


class TestVersionHistory:

    @pytest.mark.asyncio
    async def test_versions_of_one_content_item(self, rewriter, llm, principal, other_principal, project):
        content_id = uuid4()
        llm.queue(rewrite_json("First seo draft.", ["seo"]), rewrite_json("Second seo draft.", ["seo"]))

        first = await rewriter.rewrite_content(principal, params(project, ["seo"], content_id=content_id))
        second = await rewriter.rewrite_content(principal, params(project, ["seo"], content_id=content_id))

        versions = await rewriter.get_content_rewrites(principal, content_id)
        assert [v["id"] for v in versions] == [second["id"], first["id"]]
        assert all(v["originalContent"] == ORIGINAL for v in versions)
        assert await rewriter.get_content_rewrites(other_principal, content_id) == []

    @pytest.mark.asyncio
    async def test_delete_removes_only_one_version(self, rewriter, llm, principal, other_principal, project):
        content_id = uuid4()
        llm.queue(rewrite_json("First seo draft.", ["seo"]), rewrite_json("Second seo draft.", ["seo"]))
        first = await rewriter.rewrite_content(principal, params(project, ["seo"], content_id=content_id))
        second = await rewriter.rewrite_content(principal, params(project, ["seo"], content_id=content_id))

        with pytest.raises(NotFoundError):
            await rewriter.delete_rewrite(other_principal, first["id"])

        result = await rewriter.delete_rewrite(principal, first["id"])

        assert result == {"success": True, "id": first["id"]}
        versions = await rewriter.get_content_rewrites(principal, content_id)
        assert [v["id"] for v in versions] == [second["id"]]

    @pytest.mark.asyncio
    async def test_project_rewrites_limit(self, rewriter, llm, principal, project):
        for n in range(3):
            llm.queue(rewrite_json(f"Draft {n} about seo.", ["seo"]))
            await rewriter.rewrite_content(principal, params(project, ["seo"]))

        latest = await rewriter.get_project_rewrites(principal, project.id, limit=2)
        assert [r["rewrittenContent"] for r in latest] == ["Draft 2 about seo.", "Draft 1 about seo."]

        with pytest.raises(ValidationError):
            await rewriter.get_project_rewrites(principal, project.id, limit=0)
