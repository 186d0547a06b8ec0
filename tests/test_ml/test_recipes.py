"""End-to-end tests for the bundled recipes."""

import math
from concurrent.futures import ThreadPoolExecutor

import pytest


class TestRegistry:
    def test_all_recipes_registered(self):
        from src.ml.recipes import RECIPES

        assert sorted(RECIPES) == ["iris", "issues", "sentiment", "taxi-fare"]

    def test_unknown_recipe(self):
        from src.ml.recipes import get_recipe

        with pytest.raises(ValueError, match="available"):
            get_recipe("mnist")

    def test_pipelines_validate_against_schemas(self):
        from src.config.settings import PipelineSettings
        from src.ml.recipes import RECIPES

        for recipe in RECIPES.values():
            recipe.build_pipeline(PipelineSettings()).validate(recipe.schema)

    def test_broken_pipeline_fails_before_reading_data(self, session, tmp_path):
        from dataclasses import replace

        from src.ml.errors import SchemaMismatchError
        from src.ml.pipeline import Pipeline
        from src.ml.recipes import run_recipe
        from src.ml.recipes.iris import IRIS
        from src.ml.trainers import KMeansConfig, create_trainer
        from src.ml.transforms import Concatenate

        def build_pipeline(settings):
            return Pipeline(
                stages=[Concatenate("Features", "SepalLenght")],
                trainer=create_trainer(KMeansConfig(n_clusters=3)),
            )

        recipe = replace(IRIS, build_pipeline=build_pipeline)
        with pytest.raises(SchemaMismatchError) as exc:
            run_recipe(recipe, session, data_path=tmp_path / "missing.data")
        assert exc.value.column == "SepalLenght"


class TestIrisRecipe:
    def test_clusters_species(self, session, iris_file):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.iris import IRIS, SETOSA

        run = run_recipe(IRIS, session, data_path=iris_file)
        assert run.train_rows == run.test_rows == 60
        assert run.metrics.normalized_mutual_information > 0.8
        assert run.metrics.average_distance > 0

        setosa_rows = IRIS.load(session, iris_file).take(range(20))
        setosa_clusters = {p.cluster_id for p in run.model.predict_many(setosa_rows)}
        prediction = run.model.predict(SETOSA)
        assert setosa_clusters == {prediction.cluster_id}
        assert len(prediction.distances) == 3
        assert all(d >= 0 for d in prediction.distances)
        assert min(prediction.distances) == prediction.distances[prediction.cluster_id]


class TestTaxiFareRecipe:
    def test_predicts_fares(self, session, taxi_files):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.taxi_fare import SAMPLE_TRIP, TAXI_FARE

        train, test = taxi_files
        run = run_recipe(TAXI_FARE, session, data_path=train, test_path=test)
        assert run.test_rows == 60
        assert run.metrics.r_squared > 0.8
        # 2.5 + 2.4 * 3.75 + 0.004 * 1140
        assert run.model.predict(SAMPLE_TRIP).score == pytest.approx(16.06, abs=3.0)

    def test_same_seed_same_rmse(self, session, taxi_files):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.taxi_fare import TAXI_FARE

        train, test = taxi_files
        first = run_recipe(TAXI_FARE, session, data_path=train, test_path=test)
        second = run_recipe(TAXI_FARE, session, data_path=train, test_path=test)
        assert math.isfinite(first.metrics.rmse)
        assert first.metrics.rmse == second.metrics.rmse


class TestSentimentRecipe:
    def test_classifies_reviews(self, session, yelp_file):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.sentiment import SENTIMENT

        run = run_recipe(SENTIMENT, session, data_path=yelp_file)
        assert run.test_rows == 16
        assert 0.0 <= run.metrics.accuracy <= 1.0
        assert run.metrics.auc > 0.8

        negative = run.model.predict({"SentimentText": "The steak was terrible, never again."})
        positive = run.model.predict({"SentimentText": "The pasta was delicious and I will be back."})
        assert negative.predicted_label is False
        assert positive.predicted_label is True
        assert positive.probability > negative.probability

    def test_batch_samples(self, session, yelp_file):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.sentiment import SENTIMENT

        run = run_recipe(SENTIMENT, session, data_path=yelp_file)
        predictions = [run.model.predict(sample) for sample in SENTIMENT.samples]
        assert len(predictions) == 11
        assert all(0.0 <= p.probability <= 1.0 for p in predictions)


class TestIssuesRecipe:
    def test_labels_issue_areas(self, session, issues_files):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.issues import ISSUES, SAMPLE_ISSUES

        train, test = issues_files
        run = run_recipe(ISSUES, session, data_path=train, test_path=test)
        assert run.metrics.micro_accuracy > 0.9
        assert run.metrics.log_loss_reduction > 0

        websockets, entity_framework = (run.model.predict(i) for i in SAMPLE_ISSUES)
        assert websockets.predicted_label == "area-System.Net"
        assert entity_framework.predicted_label == "area-System.Data"
        assert len(websockets.scores) == 3

    def test_concurrent_predictions_match_sequential(self, session, issues_files):
        from src.ml.recipes import run_recipe
        from src.ml.recipes.issues import ISSUES, SAMPLE_ISSUES

        train, test = issues_files
        model = run_recipe(ISSUES, session, data_path=train, test_path=test).model
        rows = list(SAMPLE_ISSUES) * 10
        sequential = [model.predict(r) for r in rows]
        with ThreadPoolExecutor(max_workers=4) as pool:
            concurrent = list(pool.map(model.predict, rows))
        assert concurrent == sequential
