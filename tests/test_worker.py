"""Tests for the worker request/response protocol and the worker pool."""

import json

import numpy as np
import pytest

from conftest import SR, make_tone
from tracksense.core.worker import (
    AnalysisRequest,
    AnalysisResponse,
    AnalysisWorkerPool,
    create_worker_pool,
    run_analysis_request,
)
from tracksense.utils.errors import ConfigurationError


def tone_request(request_id, freq=440.0, seconds=3.0):
    return AnalysisRequest.from_buffer(request_id, make_tone(freq, seconds))


class TestRunAnalysisRequest:
    def test_success(self):
        response = run_analysis_request(tone_request("a"))
        assert response.ok
        assert response.request_id == "a"
        assert response.result.key == "11B"

    def test_bad_sample_rate_becomes_error_response(self):
        request = AnalysisRequest("bad", np.zeros(SR, dtype=np.float32), 0.0)
        response = run_analysis_request(request)
        assert not response.ok
        assert response.result is None
        assert response.error_type == "BufferContractError"

    def test_empty_samples_become_error_response(self):
        response = run_analysis_request(AnalysisRequest("empty", np.zeros(0), SR))
        assert response.error_type == "BufferContractError"

    def test_stereo_samples_rejected(self):
        response = run_analysis_request(AnalysisRequest("stereo", np.zeros((2, SR)), SR))
        assert response.error_type == "BufferContractError"

    def test_nan_samples_rejected(self):
        samples = make_tone(440.0, 2.0).samples.copy()
        samples[1000] = np.nan
        response = run_analysis_request(AnalysisRequest("nan", samples, SR))
        assert not response.ok
        assert response.error_type == "BufferContractError"

    def test_response_serializes(self):
        ok = run_analysis_request(tone_request("a")).to_dict()
        json.dumps(ok)
        assert ok["result"]["key"] == "11B"

        failed = AnalysisResponse.failure("b", ValueError("nope")).to_dict()
        assert failed == {"request_id": "b", "error": "nope", "error_type": "ValueError"}


class TestWorkerPool:
    def test_run_all(self):
        pool = AnalysisWorkerPool(max_workers=2)
        responses = pool.run_all(tone_request(i) for i in range(4))

        assert sorted(r.request_id for r in responses) == [0, 1, 2, 3]
        assert all(r.ok for r in responses)

    def test_mixed_success_and_failure(self):
        requests = [
            tone_request("good"),
            AnalysisRequest("bad", np.zeros(SR), -1.0),
        ]
        responses = {r.request_id: r for r in AnalysisWorkerPool(max_workers=2).run_all(requests)}
        assert responses["good"].ok
        assert not responses["bad"].ok

    def test_cancel_stops_dispatch(self):
        pool = AnalysisWorkerPool(max_workers=1)
        received = []
        for response in pool.run(tone_request(i, seconds=1.0) for i in range(5)):
            received.append(response)
            pool.cancel()

        assert len(received) == 1
        assert pool.cancelled

    def test_new_run_clears_cancel(self):
        pool = AnalysisWorkerPool(max_workers=1)
        pool.cancel()
        assert len(pool.run_all([tone_request("x", seconds=1.0)])) == 1
        assert not pool.cancelled

    def test_config_passed_to_workers(self, default_config, drop_track):
        default_config["analysis"]["drops"]["max_markers"] = 1
        pool = AnalysisWorkerPool(max_workers=1, config=default_config)
        [response] = pool.run_all([AnalysisRequest.from_buffer("d", drop_track)])
        assert len(response.result.drops) <= 1

    def test_context_manager_cancels_on_error(self):
        with pytest.raises(RuntimeError):
            with AnalysisWorkerPool() as pool:
                raise RuntimeError("interrupted")
        assert pool.cancelled

    @pytest.mark.parametrize("kwargs", [
        {"executor": "fiber"},
        {"max_workers": 0},
    ])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ConfigurationError):
            AnalysisWorkerPool(**kwargs)

    def test_factory(self, default_config):
        default_config["performance"] = {"max_workers": 3, "executor": "process"}
        pool = create_worker_pool(default_config)
        assert pool.max_workers == 3
        assert pool.executor_type == "process"
        assert pool.config is default_config
