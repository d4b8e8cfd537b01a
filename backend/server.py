import uvicorn

def main():
    # 設定の読み込みと環境変数のセットアップ
    # これを最初に行うことで、後続のインポートが正しいログディレクトリを使用できる
    from config import settings
    settings.setup_environment()

    # mainモジュールからappオブジェクトを直接インポート
    from main import app

    print(f"Starting Songs Catalog Server on {settings.SERVER_HOST}:{settings.SERVER_PORT}...")
    print(f"Log Directory: {settings.LOG_DIR}")
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT, reload=False, workers=1)

if __name__ == "__main__":
    main()
