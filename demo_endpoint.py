"""
Quick demo script to run the content search API locally.

Starts a local server and shows how to call the search endpoints.
"""

import uvicorn

if __name__ == "__main__":
    print("=" * 60)
    print("Starting Content Search Backend Demo")
    print("=" * 60)
    print()
    print("API Endpoints:")
    print("   - Health Check:   GET  http://localhost:8000/health")
    print("   - Vector Search:  POST http://localhost:8000/search")
    print("   - Text Search:    POST http://localhost:8000/search/text")
    print("   - Topics Search:  POST http://localhost:8000/search/topics")
    print("   - API Docs:            http://localhost:8000/docs")
    print()
    print("Authentication:")
    print("   All endpoints (except /health) require:")
    print("   Authorization: Bearer <supabase access token>")
    print()
    print("Test with curl:")
    print('   curl -X POST "http://localhost:8000/search/text" \\')
    print('     -H "Authorization: Bearer $TOKEN" \\')
    print('     -H "Content-Type: application/json" \\')
    print('     -d \'{"target_user_id": "<your user id>", "query": "rust async"}\'')
    print()
    print("=" * 60)
    print("Starting server on http://localhost:8000")
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(
        "content_search.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
