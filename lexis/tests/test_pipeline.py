import pytest

from conftest import FakeEntityModel, FakeSegmenter, FakeStemmer
from lexis.analyzers.frequency import StaticFrequencyDictionary
from lexis.errors import AnalysisCancelled, ResourceUnavailableError
from lexis.utils.cancellation import CancellationFlag


EXPECTED = ["obsequious", "felicity", "travelled", "clergyman", "universally"]


class TestHardWordPipeline:
    def test_finds_hard_words_rarest_first(self, make_pipeline, pride_text):
        results, stats = make_pipeline().analyze(pride_text)
        assert [r.display_word for r in results] == EXPECTED
        scores = [r.frequency_score for r in results]
        assert scores == sorted(scores)
        assert stats.sentence_count == 5
        assert stats.total_candidates == 8
        assert stats.hard_words_count == 5

    def test_names_and_places_removed(self, make_pipeline, pride_text):
        results, stats = make_pipeline().analyze(pride_text)
        words = {r.display_word for r in results}
        assert not words & {"darcy", "bennet", "elizabeth", "london"}
        assert sorted(stats.filtered_by_entities) == ["bennet", "darcy", "elizabeth"]

    def test_scores_within_threshold(self, make_pipeline, pride_text):
        results, _ = make_pipeline().analyze(pride_text, rarity_threshold=3e-6)
        assert results
        assert all(0 < r.frequency_score <= 3e-6 for r in results)

    def test_variants_and_counts(self, make_pipeline, pride_text):
        results, _ = make_pipeline().analyze(pride_text)
        by_word = {r.display_word: r for r in results}
        assert by_word["obsequious"].variant_forms == ("obsequiousness",)
        assert by_word["obsequious"].occurrence_count == 2
        assert by_word["felicity"].occurrence_count == 2
        assert len(by_word["felicity"].contexts) == 2
        assert by_word["felicity"].contexts[0].endswith(".")

    def test_lower_threshold_gives_subset(self, make_pipeline, pride_text):
        pipeline = make_pipeline()
        loose, _ = pipeline.analyze(pride_text, rarity_threshold=5e-5)
        strict, _ = pipeline.analyze(pride_text, rarity_threshold=1e-6)
        assert [r.display_word for r in strict] == ["obsequious", "felicity"]
        assert {r.display_word for r in strict} <= {r.display_word for r in loose}

    def test_idempotent(self, make_pipeline, pride_text):
        pipeline = make_pipeline()
        assert pipeline.analyze(pride_text) == pipeline.analyze(pride_text)

    def test_empty_text(self, make_pipeline):
        events = []
        results, stats = make_pipeline().analyze("", progress_sink=events.append)
        assert results == []
        assert stats.sentence_count == 0
        assert (events[-1].stage, events[-1].percent) == ("Complete", 100)

    def test_malformed_words_dropped(self, make_pipeline):
        stemmer = FakeStemmer({"obsequious": "obsequi", "obsequiousthe": "obsequi"})
        text = "The obsequiousthe clergyman bowed. His manner was obsequious and full of felicity."
        results, stats = make_pipeline(stemmer=stemmer).analyze(text)
        assert [r.display_word for r in results] == ["felicity", "clergyman"]
        assert stats.total_candidates == 2

    def test_fused_words_never_surface(self, make_pipeline):
        dictionary = StaticFrequencyDictionary({
            "ephemeral": 3e-6, "sanguine": 2e-6, "glow": 1e-5, "believes": 1e-5,
            "meets": 2e-5, "that": 1e-2, "himself": 3e-4, "the": 5e-2, "about": 2e-3,
        })
        segmenter = FakeSegmenter({"believesthat": "believes that", "meetshimself": "meets himself"})
        stemmer = FakeStemmer({
            "believesthat's": "believ", "believes": "believ",
            "meetshimself": "meet", "meets": "meet",
        })
        text = (
            "She believesthat's the ephemeral glow of youth. He believes nothing. "
            "He meetshimself in a sanguine mood. She meets the rector daily. "
            "The talk isabout the weather."
        )
        results, stats = make_pipeline(
            dictionary=dictionary, segmenter=segmenter, stemmer=stemmer
        ).analyze(text)

        shown = {r.display_word for r in results} | {v for r in results for v in r.variant_forms}
        assert not shown & {"believesthat's", "meetshimself", "isabout"}
        assert [r.display_word for r in results] == ["sanguine", "ephemeral", "glow"]
        assert stats.total_candidates == 3

    def test_progress_sequence(self, make_pipeline, pride_text):
        events = []
        make_pipeline().analyze(pride_text, progress_sink=events.append)
        percents = [e.percent for e in events]
        assert percents == sorted(percents)
        assert (events[0].stage, events[0].percent) == ("Analyzing text", 20)
        assert (events[-1].stage, events[-1].percent) == ("Complete", 100)
        assert events[-1].detail == "5 hard words found"
        assert any(e.stage == "Filtering names & places" for e in events)

    def test_failing_progress_sink_does_not_abort(self, make_pipeline, pride_text):
        def broken(event):
            raise RuntimeError("window closed")

        results, _ = make_pipeline().analyze(pride_text, progress_sink=broken)
        assert len(results) == 5


class TestCancellation:
    def test_cancelled_before_start(self, make_pipeline, pride_text):
        flag = CancellationFlag()
        flag.cancel()
        with pytest.raises(AnalysisCancelled):
            make_pipeline().analyze(pride_text, cancellation=flag)

    @pytest.mark.parametrize("stage,percent", [
        ("Analyzing text", 20),
        ("Filtering names & places", 40),
        ("Filtering names & places", 42),
        ("Filtering names & places", 80),
    ])
    def test_cancelled_mid_run(self, make_pipeline, pride_text, stage, percent):
        flag = CancellationFlag()
        events = []

        def sink(event):
            events.append(event)
            if (event.stage, event.percent) == (stage, percent):
                flag.cancel()

        with pytest.raises(AnalysisCancelled):
            make_pipeline().analyze(pride_text, progress_sink=sink, cancellation=flag)
        assert all(e.stage != "Complete" for e in events)


class TestResources:
    def test_missing_entity_model_raises(self, make_pipeline, pride_text):
        pipeline = make_pipeline(entity_model=FakeEntityModel(available=False))
        assert not pipeline.is_entity_model_available()
        with pytest.raises(ResourceUnavailableError):
            pipeline.analyze(pride_text)

    def test_entity_model_not_needed_without_proper_nouns(self, make_pipeline):
        pipeline = make_pipeline(entity_model=FakeEntityModel(available=False))
        results, _ = pipeline.analyze("Felicity was a clergyman of some felicity.")
        assert [r.display_word for r in results] == ["felicity", "clergyman"]

    def test_segmentation_availability(self, make_pipeline):
        assert make_pipeline().is_segmentation_available()
        assert not make_pipeline(segmenter=FakeSegmenter(available=False)).is_segmentation_available()

    def test_segmenter_gets_configured_edit_distance(self, make_pipeline):
        from lexis.utils.config import load_config

        config = load_config(overrides={"analysis": {"segmentation_max_edit_distance": 3}})
        pipeline = make_pipeline(config=config, segmenter=None)
        assert pipeline.segmenter.max_edit_distance == 3

    def test_module_availability_uses_given_config(self, tmp_path):
        from lexis.pipeline import is_entity_model_available
        from lexis.utils.config import load_config

        config = load_config(overrides={"resources": {"dir": str(tmp_path)}})
        assert not is_entity_model_available(config)
        model_dir = tmp_path / "gliner"
        model_dir.mkdir()
        for name in ("gliner_config.json", "tokenizer.json", "model.onnx"):
            (model_dir / name).write_text("")
        assert is_entity_model_available(config)
