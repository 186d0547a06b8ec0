"""Tests for the pipeline session."""

import pytest


class TestPipelineSession:
    def test_seed_defaults_from_settings(self):
        from src.config.settings import PipelineSettings, Settings
        from src.ml.session import PipelineSession

        settings = Settings(pipeline=PipelineSettings(seed=42))
        assert PipelineSession(settings=settings).seed == 42
        assert PipelineSession(seed=7, settings=settings).seed == 7

    def test_split_uses_settings_fraction(self, session, yelp_file):
        from src.ml.recipes.sentiment import SENTIMENT_SCHEMA

        ds = session.load_data(yelp_file, SENTIMENT_SCHEMA, separator="\t", allow_quoting=False)
        split = session.train_test_split(ds)
        assert len(split.test) == 16
        assert len(split.train) == 64

    def test_same_seed_same_model(self, iris_file):
        from src.ml.recipes.iris import IRIS, SETOSA
        from src.ml.session import PipelineSession

        predictions = []
        for _ in range(2):
            session = PipelineSession(seed=3)
            ds = IRIS.load(session, iris_file)
            model = session.fit(IRIS.build_pipeline(session.settings.pipeline), ds)
            predictions.append(model.predict(SETOSA))
        assert predictions[0] == predictions[1]

    def test_sessions_are_independent(self):
        from src.ml.session import PipelineSession

        a = PipelineSession(seed=1)
        b = PipelineSession(seed=2)
        assert (a.seed, b.seed) == (1, 2)

    def test_evaluate_and_store(self, session, iris_file, tmp_path):
        from src.ml.evaluation import ClusteringMetrics
        from src.ml.recipes.iris import IRIS, SETOSA

        ds = IRIS.load(session, iris_file)
        model = session.fit(IRIS.build_pipeline(session.settings.pipeline), ds)
        metrics = session.evaluate(model, ds)
        assert isinstance(metrics, ClusteringMetrics)

        path = tmp_path / "iris.joblib"
        session.save_model(model, path)
        loaded, schema = session.load_model(path)
        assert schema == IRIS.schema
        assert loaded.predict(SETOSA) == model.predict(SETOSA)

    def test_load_from_records(self, session):
        from src.ml.recipes.taxi_fare import SAMPLE_TRIP, TAXI_SCHEMA

        ds = session.load_from_records([SAMPLE_TRIP], TAXI_SCHEMA)
        assert len(ds) == 1
        assert ds.row(0)["TripDistance"] == pytest.approx(3.75)
